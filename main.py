import logging
import os
import platform
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pymongo.database import Database

import config
import database
from dashboard import dashboard_stats
from database import COURSE_ORDER, STUDENT_ORDER, get_db
from errors import ConflictError, register_error_handlers
from logs import setup_logging
from schemas import Course, CourseUpdate, Student, StudentUpdate

logger = logging.getLogger("sms")

STARTED = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    client, app.state.db = database.connect(config.DATABASE_URL, config.DATABASE_NAME)
    database.ensure_indexes(app.state.db)
    try:
        yield
    finally:
        database.close(client)
        logging.shutdown()


app = FastAPI(title="Student Management System API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    # Starlette replays a body read here to the endpoint
    body = None if request.method == "GET" else (await request.body()).decode("utf-8", "replace")
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            "Unhandled error: %s | %s %s params=%s query=%s body=%s",
            e, request.method, request.url.path,
            dict(request.path_params), dict(request.query_params), body,
            exc_info=e,
        )
        return JSONResponse(status_code=500, content={"error": "Internal Server Error"})
    duration = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %s %.0fms params=%s query=%s",
        request.method, request.url.path, response.status_code, duration,
        dict(request.path_params), dict(request.query_params),
    )
    return response


def uptime() -> float:
    return time.monotonic() - STARTED


def format_uptime(seconds: float) -> str:
    seconds = int(seconds)
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    return f"{days}d {hours}h {minutes}m {seconds}s"


def timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# Courses
@app.get("/api/courses")
def list_courses(db: Database = Depends(get_db)):
    items = database.courses(db).list(COURSE_ORDER)
    logger.info("Retrieved %d courses successfully", len(items))
    return items


@app.post("/api/courses", status_code=201)
def create_course(course: Course, db: Database = Depends(get_db)):
    doc = database.courses(db).insert(course.model_dump())
    logger.info("Created course %s (%s)", doc["_id"], doc["name"])
    return doc


@app.put("/api/courses/{course_id}")
def update_course(course_id: str, body: CourseUpdate, db: Database = Depends(get_db)):
    doc = database.courses(db).update(course_id, body.model_dump(exclude_unset=True))
    logger.info("Updated course %s", course_id)
    return doc


@app.delete("/api/courses/{course_id}")
def delete_course(course_id: str, db: Database = Depends(get_db)):
    courses = database.courses(db)
    course = courses.find_one(course_id)
    # Students reference a course by free text: its id or its name.
    refs = [course_id] + ([course["name"]] if course else [])
    enrolled = database.students(db).count({"course": {"$in": refs}})
    if enrolled > 0:
        raise ConflictError("Cannot delete course with enrolled students")
    courses.delete(course_id)
    logger.info("Deleted course %s", course_id)
    return {"message": "Course deleted successfully"}


# Students
@app.get("/api/students")
def list_students(db: Database = Depends(get_db)):
    items = database.students(db).list(STUDENT_ORDER)
    logger.info("Retrieved %d students successfully", len(items))
    return items


@app.post("/api/students", status_code=201)
def create_student(student: Student, db: Database = Depends(get_db)):
    doc = database.students(db).insert(student.model_dump())
    logger.info("Created student %s (%s)", doc["_id"], doc["email"])
    return doc


@app.get("/api/students/search")
def search_students(q: Optional[str] = None, db: Database = Depends(get_db)):
    students = database.students(db)
    term = (q or "").strip()
    if not term:
        return students.list(STUDENT_ORDER)
    items = students.search(term, ("name", "course", "email"), STUDENT_ORDER)
    logger.info("Search %r matched %d students", term, len(items))
    return items


@app.get("/api/students/{student_id}")
def get_student(student_id: str, db: Database = Depends(get_db)):
    return database.students(db).get(student_id)


@app.put("/api/students/{student_id}")
def update_student(student_id: str, body: StudentUpdate, db: Database = Depends(get_db)):
    doc = database.students(db).update(student_id, body.model_dump(exclude_unset=True))
    logger.info("Updated student %s", student_id)
    return doc


@app.delete("/api/students/{student_id}")
def delete_student(student_id: str, db: Database = Depends(get_db)):
    database.students(db).delete(student_id)
    logger.info("Deleted student %s", student_id)
    return {"message": "Student deleted successfully"}


# Dashboard
@app.get("/api/dashboard/stats")
def get_dashboard_stats(db: Database = Depends(get_db)):
    stats = dashboard_stats(db)
    logger.info("Dashboard stats: %d students, %d courses", stats["totalStudents"], stats["totalCourses"])
    return stats


# Health
@app.get("/api/health")
def health():
    return {
        "status": "OK",
        "timestamp": timestamp(),
        "uptime": uptime(),
        "environment": config.ENVIRONMENT,
    }


def _memory() -> dict:
    import resource

    usage = resource.getrusage(resource.RUSAGE_SELF)
    # ru_maxrss is bytes on macOS, kilobytes elsewhere
    max_rss = usage.ru_maxrss // 1024 if sys.platform == "darwin" else usage.ru_maxrss
    return {"maxRssKb": max_rss}


@app.get("/health/detailed")
def health_detailed(db: Database = Depends(get_db)):
    try:
        try:
            db.command("ping")
            db_status = "connected"
        except Exception as e:
            logger.warning("Database ping failed: %s", e)
            db_status = "disconnected"
        seconds = uptime()
        return {
            "status": "OK" if db_status == "connected" else "DEGRADED",
            "timestamp": timestamp(),
            "uptime": seconds,
            "uptimeFormatted": format_uptime(seconds),
            "environment": config.ENVIRONMENT,
            "database": {"status": db_status, "name": db.name},
            "memory": _memory(),
            "system": {
                "platform": platform.platform(),
                "pythonVersion": platform.python_version(),
                "pid": os.getpid(),
            },
        }
    except Exception as e:
        logger.exception("Detailed health check failed")
        return JSONResponse(
            status_code=500,
            content={"status": "ERROR", "message": str(e), "timestamp": timestamp()},
        )


if os.path.isdir(config.STATIC_DIR):
    app.mount("/", StaticFiles(directory=config.STATIC_DIR, html=True), name="static")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
