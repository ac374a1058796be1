from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routers.bulk_upload import router as bulk_upload_router

app = FastAPI(title="TMS Bulk Upload API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], # For development; restrict to the web client domain in production
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(bulk_upload_router)


@app.get("/health")
def health():
    return {"status": "up"}
