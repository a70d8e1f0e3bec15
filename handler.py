# handler.py
"""AWS Lambda entry point for the invoice API.

Mangum translates API Gateway events into ASGI requests for the
FastAPI application; the same app runs locally under uvicorn.
"""

from mangum import Mangum
from invoice_manager.main import app

# lifespan="off": tables and default categories are set up at import time
handler = Mangum(app, lifespan="off")
