import logging
from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

import services.class_management.models
import services.scheduling.models
from services.class_management.controllers.class_service import router as class_router
from services.class_management.controllers.student_service import router as student_router
from services.class_management.controllers.teacher_service import router as teacher_router
from services.class_management.controllers.user_service import router as user_router
from services.scheduling.controllers.calendar_service import router as calendar_router
from services.scheduling.controllers.holiday_service import router as holiday_router
from services.scheduling.controllers.rotation_service import router as rotation_router
from shared.config import CORS_ORIGINS, LOG_LEVEL

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Wechselplan Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
def health_check():
    return {"status": "Wechselplan Backend is running ✅"}


app.include_router(user_router)
app.include_router(class_router)
app.include_router(student_router)
app.include_router(teacher_router)
app.include_router(holiday_router)
app.include_router(calendar_router)
app.include_router(rotation_router)
