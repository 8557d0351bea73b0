"""
Ingestion domain: validated, idempotent writes of visitor sessions and events
"""
