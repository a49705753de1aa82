import logging
from typing import List, Optional

import bcrypt
from fastapi import FastAPI, UploadFile, File, HTTPException, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from config import Config
from database import db, MemStorage, DuplicateUsernameError
from diagnosis import diagnose_plant_disease
from object_storage import ObjectStorageService, ObjectNotFoundError
from predictor import PredictionClient, PredictionError, PredictionUnavailableError

# Import schemas
from schemas import (
    Diagnosis, DiagnosisIn, CreateDiagnosisBody,
    FarmingTip, EmergencyContact,
    UserIn, PublicUser, RegisterBody, PlantImageBody,
)

logging.basicConfig(
    level=Config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Coffee Plant Doctor API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

BACKEND_BASE = "/api"

# ----------------------
# Dependencies
# ----------------------

def get_storage() -> MemStorage:
    return db

object_storage = ObjectStorageService()
prediction_client = PredictionClient()

def get_object_storage() -> ObjectStorageService:
    return object_storage

def get_predictor() -> PredictionClient:
    return prediction_client

# Helpers

def hash_password(pw: str) -> str:
    return bcrypt.hashpw(pw.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": "Invalid request data", "errors": errors})

# Root and health
@app.get("/")
def read_root():
    return {"name": "Coffee Plant Doctor", "status": "ok"}

@app.get("/test")
def test_backend(storage: MemStorage = Depends(get_storage)):
    return {
        "backend": "✅ Running",
        "storage": "In-memory (not persisted)",
        "collections": storage.counts(),
        "object_storage": "✅ Set" if Config.PRIVATE_OBJECT_DIR else "❌ Not Set",
        "prediction_api": "✅ Set" if Config.PREDICTION_API_URL else "❌ Not Set",
    }

# ----------------------
# Diagnosis APIs
# ----------------------
@app.get(f"{BACKEND_BASE}/diagnoses", response_model=List[Diagnosis])
def list_diagnoses(userId: Optional[str] = Query(None), storage: MemStorage = Depends(get_storage)):
    try:
        return storage.get_diagnoses(userId)
    except Exception:
        logger.exception("Error fetching diagnoses")
        raise HTTPException(status_code=500, detail="Failed to fetch diagnoses")

@app.get(f"{BACKEND_BASE}/diagnoses/{{diagnosis_id}}", response_model=Diagnosis)
def get_diagnosis(diagnosis_id: str, storage: MemStorage = Depends(get_storage)):
    diagnosis = storage.get_diagnosis(diagnosis_id)
    if not diagnosis:
        raise HTTPException(status_code=404, detail="Diagnosis not found")
    return diagnosis

@app.post(f"{BACKEND_BASE}/diagnoses", response_model=Diagnosis)
def create_diagnosis(payload: CreateDiagnosisBody, storage: MemStorage = Depends(get_storage)):
    try:
        result = diagnose_plant_disease(payload.symptoms, payload.imageUrl, payload.diagnosisMethod)
        record = DiagnosisIn(
            **result.model_dump(),
            userId=payload.userId,
            symptoms=payload.symptoms,
            diagnosisMethod=payload.diagnosisMethod,
            imageUrl=payload.imageUrl or None,
            voiceRecordingUrl=payload.voiceRecordingUrl or None,
        )
        saved = storage.create_diagnosis(record)
    except Exception:
        logger.exception("Error creating diagnosis")
        raise HTTPException(status_code=500, detail="Failed to create diagnosis")
    logger.info("Diagnosis %s: %s (%s)", saved.id, saved.diseaseName, saved.diagnosisMethod)
    return saved

# ----------------------
# Farming tips & contacts
# ----------------------
@app.get(f"{BACKEND_BASE}/farming-tips", response_model=List[FarmingTip])
def list_farming_tips(season: Optional[str] = Query(None), storage: MemStorage = Depends(get_storage)):
    try:
        return storage.get_farming_tips(season)
    except Exception:
        logger.exception("Error fetching farming tips")
        raise HTTPException(status_code=500, detail="Failed to fetch farming tips")

@app.get(f"{BACKEND_BASE}/emergency-contacts", response_model=List[EmergencyContact])
def list_emergency_contacts(storage: MemStorage = Depends(get_storage)):
    try:
        return storage.get_emergency_contacts()
    except Exception:
        logger.exception("Error fetching emergency contacts")
        raise HTTPException(status_code=500, detail="Failed to fetch emergency contacts")

# ----------------------
# User APIs
# ----------------------
@app.post(f"{BACKEND_BASE}/users", response_model=PublicUser, status_code=201)
def register_user(payload: RegisterBody, storage: MemStorage = Depends(get_storage)):
    try:
        user = storage.create_user(UserIn(username=payload.username, password=hash_password(payload.password)))
    except DuplicateUsernameError:
        raise HTTPException(status_code=400, detail="Username already taken")
    return PublicUser(id=user.id, username=user.username)

@app.get(f"{BACKEND_BASE}/users/{{user_id}}", response_model=PublicUser)
def get_user(user_id: str, storage: MemStorage = Depends(get_storage)):
    user = storage.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return PublicUser(id=user.id, username=user.username)

# ----------------------
# Object storage APIs
# ----------------------
@app.post(f"{BACKEND_BASE}/objects/upload")
def get_upload_url(objects: ObjectStorageService = Depends(get_object_storage)):
    try:
        upload_url = objects.get_object_entity_upload_url()
    except Exception:
        logger.exception("Error getting upload URL")
        raise HTTPException(status_code=500, detail="Failed to get upload URL")
    return {"uploadURL": upload_url}

@app.put(f"{BACKEND_BASE}/plant-images")
def set_plant_image(payload: PlantImageBody, objects: ObjectStorageService = Depends(get_object_storage)):
    try:
        object_path = objects.normalize_object_entity_path(payload.imageURL)
    except Exception:
        logger.exception("Error setting plant image")
        raise HTTPException(status_code=500, detail="Internal server error")
    return {"objectPath": object_path}

@app.get("/objects/{object_path:path}")
def download_object(object_path: str, objects: ObjectStorageService = Depends(get_object_storage)):
    try:
        download = objects.download_object(f"/objects/{object_path}")
    except ObjectNotFoundError:
        raise HTTPException(status_code=404, detail="Object not found")
    except Exception:
        logger.exception("Error accessing object %s", object_path)
        raise HTTPException(status_code=500, detail="Failed to fetch object")
    return StreamingResponse(download.chunks, media_type=download.media_type, headers=download.headers)

# ----------------------
# Image prediction API
# ----------------------
@app.post(f"{BACKEND_BASE}/predict")
async def predict_image(image: UploadFile = File(...), predictor: PredictionClient = Depends(get_predictor)):
    content = await image.read()
    if len(content) == 0:
        raise HTTPException(status_code=400, detail="Empty image")
    if len(content) > Config.MAX_IMAGE_SIZE:
        raise HTTPException(status_code=400, detail="Image too large")
    try:
        prediction = await run_in_threadpool(
            predictor.predict,
            image.filename or "upload",
            content,
            image.content_type or "application/octet-stream",
        )
    except PredictionUnavailableError:
        raise HTTPException(status_code=503, detail="Prediction service not configured")
    except PredictionError as e:
        logger.error("Prediction failed for %s: %s", image.filename, e)
        raise HTTPException(status_code=502, detail="Prediction service error")
    return {"prediction": prediction}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=Config.PORT)
