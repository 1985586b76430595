"""
Services: authentication (auth_service.py) and upload storage (file_service.py).
"""
