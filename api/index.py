"""
Vercel Serverless Function wrapper for the FastAPI app
"""
import sys
from pathlib import Path

# Add backend to Python path
backend_path = Path(__file__).parent.parent / "backend"
sys.path.insert(0, str(backend_path))

from oss_finder.main import app

# Vercel's @vercel/python builder expects a Lambda-style handler; Mangum
# adapts the ASGI app. Lifespan stays off so no sweeper task outlives a
# single invocation.
from mangum import Mangum

mangum_handler = Mangum(app, lifespan="off")


def handler(event, context=None):
    """Vercel serverless function handler"""
    return mangum_handler(event, context)
