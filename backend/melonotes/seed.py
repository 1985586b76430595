"""
MELONOTES Backend — Startup Seeder
====================================

What:  Puts the datastore into a usable first-run state.
How:   Runs after storage init when SEED_ON_STARTUP is true. Each step
       checks before it writes, so running it on every start is harmless:
         1. the single user account (bcrypt-hashed password)
         2. the default tag palette and categories, by name
         3. two sample notes, only while there are no notes at all
"""

import logging
from typing import Dict, Optional

from melonotes.config import Settings, settings as default_settings
from melonotes.repositories import (
    CategoryRepository,
    CodeSnippetRepository,
    NoteRepository,
    ScriptRepository,
    TagRepository,
    UserRepository,
)
from melonotes.services.auth_service import AuthService
from melonotes.storage.base import NOTE, StorageAdapter

logger = logging.getLogger(__name__)

DEFAULT_TAGS = [
    ("MSSQL", "#FF6B6B"),
    ("PostgreSQL", "#4ECDC4"),
    ("MySQL", "#45B7D1"),
    ("Oracle", "#96CEB4"),
    ("MongoDB", "#FECA57"),
    ("Redis", "#FF9F43"),
    ("Performance", "#FF6348"),
    ("Indexing", "#A0E7E5"),
    ("Query Optimization", "#FFA726"),
    ("Backup", "#66BB6A"),
    ("Recovery", "#EF5350"),
    ("Security", "#AB47BC"),
    ("Replication", "#26C6DA"),
    ("Cluster", "#7E57C2"),
    ("Migration", "#FF7043"),
]

DEFAULT_CATEGORIES = [
    ("Database Performance", "#FF6B6B"),
    ("SQL Sorgulama", "#4ECDC4"),
    ("Index Optimizasyonu", "#45B7D1"),
    ("Backup & Recovery", "#96CEB4"),
    ("Güvenlik", "#AB47BC"),
]

INDEX_ANALYSIS_SQL = """\
-- Tables without any index
SELECT o.name AS table_name, i.name AS index_name
FROM sys.tables o
LEFT JOIN sys.indexes i ON o.object_id = i.object_id
WHERE i.name IS NULL
ORDER BY o.name;

-- Slowest statements by average elapsed time
SELECT TOP 10
    total_elapsed_time / execution_count AS avg_time,
    text AS query_text
FROM sys.dm_exec_query_stats s
CROSS APPLY sys.dm_exec_sql_text(s.sql_handle) t
ORDER BY avg_time DESC;"""

PRODUCT_QUERY_SQL = """\
SELECT p.product_name, p.price, c.category_name
FROM products p
INNER JOIN categories c ON p.category_id = c.id
WHERE p.is_active = 1
ORDER BY p.created_date DESC;

CREATE INDEX idx_products_active_created
ON products (is_active, created_date, category_id);"""

INDEX_DEPLOY_SQL = """\
CREATE NONCLUSTERED INDEX [IX_Products_CategoryID_Price_Includes]
ON [dbo].[Products] ([CategoryID], [UnitPrice], [Discontinued])
INCLUDE ([ProductName], [UnitsInStock])
WITH (ONLINE = ON, MAXDOP = 4);

UPDATE STATISTICS [dbo].[Products] [IX_Products_CategoryID_Price_Includes];"""

PAGINATION_SQL = """\
SELECT p.ProductID, p.ProductName, c.CategoryName
FROM Products p
INNER JOIN Categories c ON p.CategoryID = c.CategoryID
WHERE p.Discontinued = 0
  AND (@CategoryFilter IS NULL OR p.CategoryID = @CategoryFilter)
ORDER BY p.ProductName
OFFSET ((@PageNumber - 1) * @PageSize) ROWS
FETCH NEXT @PageSize ROWS ONLY;"""

SLOW_QUERY_BASH = """\
#!/bin/bash
SERVER="localhost"
DATABASE="ECommerceDB"
OUTPUT_FILE="query_performance_$(date +%Y%m%d_%H%M%S).txt"

sqlcmd -S "$SERVER" -d "$DATABASE" -E -h -1 -W -Q "
SELECT TOP 10 qs.total_elapsed_time / qs.execution_count AS avg_elapsed_time,
       qs.execution_count
FROM sys.dm_exec_query_stats AS qs
ORDER BY avg_elapsed_time DESC" > "$OUTPUT_FILE"

echo "Results saved to: $OUTPUT_FILE\""""

BACKUP_SQL = """\
BACKUP DATABASE @DatabaseName
TO DISK = @BackupFileName + '_1',
   DISK = @BackupFileName + '_2'
WITH COMPRESSION, CHECKSUM, STATS = 10,
     MAXTRANSFERSIZE = 4194304, BUFFERCOUNT = 100, INIT, FORMAT;

RESTORE VERIFYONLY
FROM DISK = @BackupFileName + '_1',
     DISK = @BackupFileName + '_2';"""

BACKUP_POWERSHELL = """\
param(
    [string]$ServerInstance = "PROD-SQL01",
    [string]$DatabaseName = "ECommerceDB",
    [string]$BackupPath = "E:\\\\Backups\\\\"
)
Import-Module SqlServer -ErrorAction Stop

$backupType = if ((Get-Date).DayOfWeek -eq "Sunday") { "FULL" } else { "DIFFERENTIAL" }
$timestamp = Get-Date -Format "yyyyMMdd_HHmmss"
$backupFile = "$BackupPath$DatabaseName_$($backupType)_$timestamp.bak"

Invoke-Sqlcmd -ServerInstance $ServerInstance -Query "BACKUP DATABASE [$DatabaseName] TO DISK = '$backupFile' WITH COMPRESSION, CHECKSUM"
Write-Host "Backup written to $backupFile\""""


def sample_notes():
    """
    The two first-run notes. Snippets and scripts are listed per solution
    (by position) and attached after the solutions exist.
    """
    return [
        {
            "note": {
                "title": "MELO İÇİN ÖZEL - SQL Performance Problemi",
                "problem": (
                    "E-commerce sitesinde ürün sorguları 15 saniye sürüyor ve "
                    "müşterilerimizi bekletiyoruz."
                ),
                "problem_definition": (
                    "Dashboard sayfasında kategori filtreleri çok yavaş çalışıyor. "
                    "Her click 15+ saniye bekliyor."
                ),
                "analysis": (
                    "Missing index var, full table scan yapıyor, JOIN optimizasyonu gerekli."
                ),
                "why_solution_a": "En hızlı ve etkili çözüm; minimal sistem etkisi.",
                "why_switch_to_b": "Index eklenemezse sorgu mantığı değiştirilerek ilerlenir.",
                "priority": 3,
                "solutions": [
                    {
                        "plan_type": "Plan A - Index Optimizasyonu",
                        "description": "Eksik indexlerin eklenmesi ve mevcut indexlerin optimizasyonu",
                        "reasoning": (
                            "En hızlı ve etkili çözüm. Minimal sistem etkisi ile maksimum "
                            "performans artışı sağlar."
                        ),
                        "steps": [
                            {"description": "Query execution plan analizi yapılması"},
                            {"description": "Missing index recommendation'ların incelenmesi"},
                            {"description": "Composite index'lerin tasarlanması"},
                            {"description": "Index implementation ve test edilmesi"},
                            {"description": "Production deployment ve monitoring"},
                        ],
                    },
                    {
                        "plan_type": "Plan B - Query Rewrite",
                        "description": "Sorgu yapısının yeniden tasarlanması ve optimizasyonu",
                        "reasoning": (
                            "Index ekleme yapılamadığı durumlarda alternatif çözüm."
                        ),
                        "steps": [
                            {"description": "Mevcut sorgu yapısının analiz edilmesi"},
                            {"description": "Alternative query approach'ların araştırılması"},
                            {"description": "CTE ve subquery optimizasyonları"},
                            {"description": "Pagination logic'in iyileştirilmesi"},
                            {"description": "Caching strategy implementasyonu"},
                        ],
                    },
                ],
            },
            "category": "Database Performance",
            "tags": ["MSSQL", "Performance", "Indexing", "Query Optimization"],
            "code_snippets": {
                0: [
                    {
                        "title": "Index Analiz Sorgusu",
                        "language": "sql",
                        "code": INDEX_ANALYSIS_SQL,
                        "description": "Eksik indexleri ve yavaş sorguları bulur",
                    },
                    {
                        "title": "Hızlı Ürün Sorgusu",
                        "language": "sql",
                        "code": PRODUCT_QUERY_SQL,
                        "description": "Optimize edilmiş ürün listesi sorgusu ve gerekli index",
                    },
                ],
                1: [
                    {
                        "title": "Optimized Pagination Query",
                        "language": "sql",
                        "code": PAGINATION_SQL,
                        "description": "OFFSET/FETCH ile sayfalama",
                    },
                ],
            },
            "scripts": {
                0: [
                    {
                        "title": "Index Creation Script",
                        "script_type": "sql",
                        "content": INDEX_DEPLOY_SQL,
                        "description": "Production ortamında index deployment script",
                    },
                ],
                1: [
                    {
                        "title": "Query Performance Analyzer",
                        "script_type": "bash",
                        "content": SLOW_QUERY_BASH,
                        "description": "Bash script ile SQL Server performans analizi",
                    },
                ],
            },
        },
        {
            "note": {
                "title": "Backup Strategy Optimization",
                "problem": (
                    "Mevcut backup sistemi çok yavaş ve sistem kaynaklarını aşırı kullanıyor. "
                    "Gece backup işlemleri 6 saat sürüyor."
                ),
                "problem_definition": (
                    "Production veritabanının backup işlemi sistem performansını ciddi şekilde "
                    "etkilemekte ve RTO/RPO hedeflerine ulaşamıyoruz."
                ),
                "analysis": (
                    "Full backup + differential backup stratejisi yeniden gözden geçirilmeli. "
                    "Compression ve parallelization seçenekleri değerlendirilmeli."
                ),
                "priority": 2,
                "solutions": [
                    {
                        "plan_type": "Plan A - Compression & Parallelization",
                        "description": "Backup compression ve parallel processing ile optimization",
                        "reasoning": "Backup süresini %70 azaltabilir ve sistem etkisini minimize eder.",
                        "steps": [
                            {"description": "Current backup performance analysis"},
                            {"description": "Compression ratio testing"},
                            {"description": "Parallel backup configuration"},
                            {"description": "Backup verification automation"},
                            {"description": "Monitoring dashboard setup"},
                        ],
                    },
                ],
            },
            "category": "Backup & Recovery",
            "tags": ["MSSQL", "Backup", "Recovery"],
            "code_snippets": {
                0: [
                    {
                        "title": "Optimized Backup Script",
                        "language": "sql",
                        "code": BACKUP_SQL,
                        "description": "Multi-file compressed backup with verification",
                    },
                ],
            },
            "scripts": {
                0: [
                    {
                        "title": "Automated Backup Solution",
                        "script_type": "powershell",
                        "content": BACKUP_POWERSHELL,
                        "description": "Pazar günleri full, diğer günler differential backup",
                    },
                ],
            },
        },
    ]


async def seed_user(storage: StorageAdapter, settings: Settings) -> None:
    users = UserRepository(storage)
    if await users.get_by_username(settings.seed_username) is not None:
        return
    password_hash = AuthService(settings).hash_password(settings.seed_password)
    await users.create(settings.seed_username, password_hash)
    logger.info("Seeded user '%s'", settings.seed_username)


async def seed_named(repository, defaults) -> Dict[str, int]:
    """Create any missing (name, color) pairs; returns name → id for all of them."""
    ids = {}
    created = 0
    for name, color in defaults:
        record = await repository.get_by_name(name)
        if record is None:
            record = await repository.create({"name": name, "color": color})
            created += 1
        ids[name] = record["id"]
    if created:
        logger.info("Seeded %d %s records", created, repository.resource.lower())
    return ids


async def seed_notes(
    storage: StorageAdapter, category_ids: Dict[str, int], tag_ids: Dict[str, int]
) -> None:
    if await storage.count(NOTE) > 0:
        return

    notes = NoteRepository(storage)
    snippets = CodeSnippetRepository(storage)
    scripts = ScriptRepository(storage)

    for sample in sample_notes():
        note = await notes.create(
            {
                **sample["note"],
                "category_id": category_ids.get(sample["category"]),
                "tags": [tag_ids[name] for name in sample["tags"] if name in tag_ids],
            }
        )
        solutions = note["solutions"]
        order = 0
        for position, items in sample["code_snippets"].items():
            for item in items:
                await snippets.create(
                    note["id"], {**item, "solution_id": solutions[position]["id"]}, position=order
                )
                order += 1
        order = 0
        for position, items in sample["scripts"].items():
            for item in items:
                await scripts.create(
                    note["id"], {**item, "solution_id": solutions[position]["id"]}, position=order
                )
                order += 1

    logger.info("Seeded sample notes")


async def seed(storage: StorageAdapter, settings: Optional[Settings] = None) -> None:
    """Seed the user, lookup tables and sample notes; safe to call on every start."""
    cfg = settings or default_settings
    await seed_user(storage, cfg)
    tag_ids = await seed_named(TagRepository(storage), DEFAULT_TAGS)
    category_ids = await seed_named(CategoryRepository(storage), DEFAULT_CATEGORIES)
    await seed_notes(storage, category_ids, tag_ids)
