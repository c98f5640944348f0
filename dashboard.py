from pymongo.database import Database

from database import COURSES, STUDENTS


def success_rate(graduates: int, total: int) -> int:
    if total <= 0:
        return 0
    # half up, integer arithmetic
    return (graduates * 200 + total) // (2 * total)


def dashboard_stats(db: Database) -> dict:
    """Counts for the dashboard view.

    Each figure is its own query; they are not read from one snapshot, so
    concurrent writes can leave them slightly out of step. Inactive
    students are reported as graduates.
    """
    total_students = db[STUDENTS].count_documents({})
    total_courses = db[COURSES].count_documents({})
    active_students = db[STUDENTS].count_documents({"status": "active"})
    active_courses = db[COURSES].count_documents({"status": "active"})
    graduates = db[STUDENTS].count_documents({"status": "inactive"})

    enrollments = list(db[STUDENTS].aggregate([
        {"$group": {"_id": "$course", "count": {"$sum": 1}}},
        {"$sort": {"count": -1, "_id": 1}},
    ]))

    return {
        "totalStudents": total_students,
        "totalCourses": total_courses,
        "activeStudents": active_students,
        "activeCourses": active_courses,
        "graduates": graduates,
        "courseEnrollments": enrollments,
        "successRate": success_rate(graduates, total_students),
    }
