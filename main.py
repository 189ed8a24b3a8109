import logging
import os
import sys
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Depends, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import auth
import database
import uploads
from auth import check_admin_password, get_current_admin, issue_admin_token, ACCESS_TOKEN_EXPIRE_MINUTES
from schemas import Intro, Experience, Skill, Project, Art, ContactQuery, AuthRequest

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger("portfolio")

if database.db is None:
    logger.warning("DATABASE_URL not set, document store is unavailable")
else:
    logger.info("Using MongoDB database %r", database.DATABASE_NAME)
if auth.ADMIN_PASSWORD_HASH is None:
    logger.warning("No admin password configured, admin login is disabled")

ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:5173").split(",") if o.strip()]

# Served by GET /intro until the first profile is saved
DEFAULT_INTRO = {
    "name": "Krish",
    "title": "Developer",
    "bio": "No bio found",
    "email": "example@email.com",
}

# ==================
# FastAPI app config
# ==================
app = FastAPI(title="Portfolio API")


# ==============
# Error handling
# ==============
def _internal_error(request: Request, exc: Exception) -> JSONResponse:
    correlation_id = getattr(request.state, "request_id", None) or uuid.uuid4().hex
    logger.error(
        "Internal error [%s] %s %s: %s",
        correlation_id, request.method, request.url.path, exc,
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return JSONResponse(
        status_code=500,
        content={"statuscode": 0, "error": "Internal server error", "correlation_id": correlation_id},
        headers={"X-Request-ID": correlation_id},
    )


# Registered before CORS so CORS wraps it and also decorates the 500 envelope
@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request.state.request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    try:
        response = await call_next(request)
    except Exception as exc:
        return _internal_error(request, exc)
    response.headers["X-Request-ID"] = request.state.request_id
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

uploads.ensure_upload_dirs()
app.mount("/uploads", StaticFiles(directory=str(uploads.UPLOAD_DIR)), name="uploads")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if exc.status_code == 404 and "endpoint" not in request.scope:
        # nothing in the router matched the path
        detail = "Route not found"
    return JSONResponse(
        status_code=exc.status_code,
        content={"statuscode": 0, "error": detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected request body on %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=422, content={"statuscode": 0, "error": "Invalid request body"})


@app.exception_handler(PyMongoError)
async def store_exception_handler(request: Request, exc: PyMongoError):
    return _internal_error(request, exc)


# =========
# Utilities
# =========
def as_serializable(doc: Dict[str, Any]):
    if not doc:
        return doc
    d = dict(doc)
    if d.get("_id"):
        d["id"] = str(d.pop("_id"))
    # Convert datetimes to isoformat
    for k, v in list(d.items()):
        if isinstance(v, datetime):
            d[k] = v.isoformat()
    return d


def ok(d: Any = None):
    if d is None:
        return {"statuscode": 1}
    return {"statuscode": 1, "d": d}


# Generic CRUD helpers

def create_item(collection: str, data: Dict[str, Any]):
    new_id = database.create_document(collection, data)
    logger.info("Created %s %s", collection, new_id)
    return ok(as_serializable(database.get_document(collection, new_id)))


def list_items(collection: str):
    return ok([as_serializable(d) for d in database.get_documents(collection)])


def update_item(collection: str, id_str: str, data: Dict[str, Any]):
    doc = database.replace_fields(collection, id_str, data)
    if doc is None:
        raise HTTPException(status_code=404, detail="Not found")
    logger.info("Updated %s %s", collection, id_str)
    return ok(as_serializable(doc))


def delete_item(collection: str, id_str: str):
    if not database.delete_document(collection, id_str):
        raise HTTPException(status_code=404, detail="Not found")
    logger.info("Deleted %s %s", collection, id_str)
    return ok()


# ======
# Routes
# ======
@app.get("/")
def root():
    return {
        "message": "Portfolio Backend API",
        "endpoints": [
            "/intro",
            "/experience",
            "/skill",
            "/project",
            "/art",
            "/query",
            "/upload/profile",
            "/upload/art",
            "/auth",
            "/health",
        ],
    }


@app.get("/health")
def health():
    return {
        "status": "ok",
        "message": "Server is running",
        "timestamp": datetime.utcnow().isoformat(),
        "database": "connected" if database.ping() else "disconnected",
    }


# Auth
@app.post("/auth")
def login(data: Optional[AuthRequest] = None):
    password = data.password if data and isinstance(data.password, str) else ""
    if not check_admin_password(password):
        logger.warning("Admin login failed")
        return JSONResponse(status_code=401, content={"statuscode": 0, "ok": False, "error": "Invalid password"})
    logger.info("Admin login succeeded")
    return {
        "statuscode": 1,
        "ok": True,
        "d": {
            "access_token": issue_admin_token(),
            "token_type": "bearer",
            "expires_in": ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        },
    }


@app.get("/auth/session")
def session(admin: dict = Depends(get_current_admin)):
    expires_at = datetime.utcfromtimestamp(admin["exp"]).isoformat() if admin.get("exp") else None
    return ok({"role": admin["role"], "expires_at": expires_at})


# Intro (one profile record, updated in place)
@app.get("/intro")
def get_intro():
    doc = database.latest_document("intro")
    if not doc:
        return ok(dict(DEFAULT_INTRO))
    return ok(as_serializable(doc))


@app.post("/intro")
def save_intro(intro: Intro, _: dict = Depends(get_current_admin)):
    doc = database.save_singleton("intro", intro)
    logger.info("Saved intro %s", doc["_id"])
    return ok(as_serializable(doc))


# Experience
@app.get("/experience")
def get_experience():
    return list_items("experience")


@app.post("/experience")
def create_experience(item: Experience, _: dict = Depends(get_current_admin)):
    return create_item("experience", item.model_dump())


@app.put("/experience/{id}")
def update_experience(id: str, item: Experience, _: dict = Depends(get_current_admin)):
    return update_item("experience", id, item.model_dump())


@app.delete("/experience/{id}")
def remove_experience(id: str, _: dict = Depends(get_current_admin)):
    return delete_item("experience", id)


# Skills
@app.get("/skill")
def get_skills():
    return list_items("skill")


@app.post("/skill")
def create_skill(item: Skill, _: dict = Depends(get_current_admin)):
    return create_item("skill", item.model_dump())


@app.put("/skill/{id}")
def update_skill(id: str, item: Skill, _: dict = Depends(get_current_admin)):
    return update_item("skill", id, item.model_dump())


@app.delete("/skill/{id}")
def remove_skill(id: str, _: dict = Depends(get_current_admin)):
    return delete_item("skill", id)


# Projects
@app.get("/project")
def get_projects():
    return list_items("project")


@app.post("/project")
def create_project(item: Project, _: dict = Depends(get_current_admin)):
    return create_item("project", item.model_dump())


@app.put("/project/{id}")
def update_project(id: str, item: Project, _: dict = Depends(get_current_admin)):
    return update_item("project", id, item.model_dump())


@app.delete("/project/{id}")
def remove_project(id: str, _: dict = Depends(get_current_admin)):
    return delete_item("project", id)


# Art
@app.get("/art")
def get_art():
    return list_items("art")


@app.post("/art")
def create_art(item: Art, _: dict = Depends(get_current_admin)):
    return create_item("art", item.model_dump())


@app.put("/art/{id}")
def update_art(id: str, item: Art, _: dict = Depends(get_current_admin)):
    return update_item("art", id, item.model_dump())


@app.delete("/art/{id}")
def remove_art(id: str, _: dict = Depends(get_current_admin)):
    return delete_item("art", id)


# Contact queries (public submit, admin read/delete, never edited)
@app.post("/query")
def submit_query(item: ContactQuery):
    return create_item("query", {**item.model_dump(), "createdAt": datetime.utcnow()})


@app.get("/query")
def get_queries(_: dict = Depends(get_current_admin)):
    return list_items("query")


@app.delete("/query/{id}")
def remove_query(id: str, _: dict = Depends(get_current_admin)):
    return delete_item("query", id)


# Uploads
@app.post("/upload/profile")
def upload_profile(request: Request, profileImage: Optional[UploadFile] = File(None),
                   _: dict = Depends(get_current_admin)):
    return ok(uploads.save_upload(request, "profile", profileImage))


@app.post("/upload/art")
def upload_art(request: Request, artImage: Optional[UploadFile] = File(None),
               _: dict = Depends(get_current_admin)):
    return ok(uploads.save_upload(request, "art", artImage))


@app.post("/upload/sweep")
def sweep_uploads(grace_seconds: Optional[int] = None, _: dict = Depends(get_current_admin)):
    return ok(uploads.sweep_orphans(grace_seconds))


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
