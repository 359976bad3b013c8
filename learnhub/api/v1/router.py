from fastapi import APIRouter

from learnhub.api.v1.endpoints import (
    auth,
    contents,
    courses,
    enrollments,
    modules,
    notifications,
    payments,
    quizzes,
    uploads,
    users,
)

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(courses.router)
api_router.include_router(modules.router)
api_router.include_router(contents.router)
api_router.include_router(quizzes.router)
api_router.include_router(enrollments.router)
api_router.include_router(payments.router)
api_router.include_router(notifications.router)
api_router.include_router(uploads.router)
