# backend/tasks/__init__.py
"""
Celery task modules, registered through celery_app's include list
"""
