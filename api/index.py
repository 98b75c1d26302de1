"""
Serverless entry point for the EQMS helpdesk API.

Serverless instances do not live long enough to own a scheduler; run the
escalation sweep from an external cron through POST /api/escalations/sweep.
"""
import os

# Set environment variables for serverless
os.environ.setdefault("ENVIRONMENT", "production")
os.environ.setdefault("ESCALATION_SCHEDULER_ENABLED", "false")
os.environ.setdefault("DB_CREATE_TABLES", "false")

from mangum import Mangum

from eqms.main import app

# Lambda handler for the ASGI app; lifespan wires the request-scoped services
handler = Mangum(app, lifespan="auto")
