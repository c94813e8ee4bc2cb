from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cargodock.api.routers.imports import router as imports_router

app = FastAPI(title="CARGODOCK API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # For development; pin the operator console origin in production
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(imports_router)


@app.get("/health")
def health():
    return {"status": "up"}
