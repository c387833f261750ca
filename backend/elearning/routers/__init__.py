"""API and page routers, in the order they are mounted on the app."""

from . import (
    analytics,
    auth,
    chapters,
    classes,
    content,
    courses,
    domains,
    enrollments,
    modules,
    pages,
    profile,
    progress,
    projects,
    quiz_attempts,
    users,
)

all_routers = [
    auth.router,
    users.router,
    profile.router,
    domains.router,
    courses.router,
    modules.router,
    chapters.router,
    content.router,
    enrollments.router,
    progress.router,
    quiz_attempts.router,
    projects.router,
    classes.router,
    analytics.router,
    pages.router,
]

__all__ = ["all_routers"]
