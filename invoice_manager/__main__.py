"""Local development server: ``python -m invoice_manager``."""

import os

import uvicorn

from .main import app

if __name__ == "__main__":
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
