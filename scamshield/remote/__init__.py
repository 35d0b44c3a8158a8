"""
Remote Collaborators
=====================
- api_client.py - HTTP client for the ScamShield API (sync + async facade)
"""
