"""
AI Tutor Service - FastAPI application hosting the tutor orchestrator.
"""
