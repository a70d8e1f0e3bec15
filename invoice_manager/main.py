import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .controllers import auth, authors, cards, categories, invoices, items, subscriptions
from .database import engine, Base, SessionLocal
from .exceptions import InvoiceManagerError
from .services.categories import seed_default_categories

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Invoice Manager API")

# Configure CORS - explicit origins required when allow_credentials=True
DEFAULT_ORIGINS = [
    "http://localhost:5173",                    # Local development
    "http://localhost:3000",                    # Alternative local dev
]
origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()] or DEFAULT_ORIGINS

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvoiceManagerError)
async def handle_domain_error(request: Request, exc: InvoiceManagerError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Create database tables
Base.metadata.create_all(bind=engine)

with SessionLocal() as session:
    seed_default_categories(session)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(cards.router, prefix="/api/cards", tags=["cards"])
app.include_router(invoices.router, prefix="/api/invoices", tags=["invoices"])
app.include_router(items.router, prefix="/api/items", tags=["items"])
app.include_router(authors.router, prefix="/api/authors", tags=["authors"])
app.include_router(categories.router, prefix="/api/categories", tags=["categories"])
app.include_router(subscriptions.router, prefix="/api/subscriptions", tags=["subscriptions"])


@app.get("/api/health", tags=["health"])
def health():
    return {"status": "ok", "message": "Server is running"}
