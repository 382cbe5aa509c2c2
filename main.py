from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import SQLModel
import models.attendance  # Ensure this model is known by SQLModel for table creation
from db.session import engine
from contextlib import asynccontextmanager
from api.attendance_routes import router as attendance_router
from core.config import get_config
import logging
import os
from dotenv import load_dotenv

# Load environment variables from .env file, if it exists
load_dotenv()

# Configure logging
logging.basicConfig(
    level=get_config().log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

# Default values can be provided if the env var is not set
DEV_DOMAIN = os.getenv("DEV_DOMAIN", "http://localhost:5173")
PRODUCTION_DOMAIN = os.getenv("PRODUCTION_DOMAIN")

# Construct the list of allowed origins, always including both dev and production
allowed_origins_list = [
    DEV_DOMAIN,
    PRODUCTION_DOMAIN,
    "http://localhost:3000",  # Additional fallback for React dev
    "http://127.0.0.1:5173",  # Additional fallback for Vite dev
]

# Remove any None values and duplicates
allowed_origins_list = list(set([origin for origin in allowed_origins_list if origin]))

logger.info(f"CORS: Allowing origins: {allowed_origins_list}")

# When We Start, Create the DB Tables if they don't exist
@asynccontextmanager
async def lifespan(app: FastAPI):

    SQLModel.metadata.create_all(engine)
    reference = get_config().reference
    logger.info(
        f"Attendance reference point ({reference.point.latitude}, {reference.point.longitude}), "
        f"radius {reference.radius_meters:g}m"
    )

    yield


# Starts Fast API Up; Init
app = FastAPI(lifespan=lifespan)

# Allow requests from the web client in dev & production
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Connects Attendance Routes (check-in / out, last event, history) to main app
app.include_router(attendance_router, prefix="/attendance", tags=["Attendance", "Geofence"])


# Rejected values are not echoed back; NaN / Infinity inputs cannot be encoded as JSON
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {key: value for key, value in error.items() if key != "input"}
        for error in exc.errors()
    ]
    logger.info(f"Rejected request to {request.url.path}: {len(errors)} validation error(s)")
    return JSONResponse(status_code=422, content=jsonable_encoder({"detail": errors}))
