from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from school_ledger.api.v1.arrears.router import router as arrears_router
from school_ledger.core.config import settings
from school_ledger.core.logging_config import configure_logging


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="School Ledger Backend")

    # CORS: allow the admin frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(arrears_router)

    return app


app = create_app()
