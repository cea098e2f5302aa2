from refkeeper.web.routers.account import router as account_router
from refkeeper.web.routers.admin import router as admin_router
from refkeeper.web.routers.comments import router as comments_router
from refkeeper.web.routers.roots import router as roots_router
from refkeeper.web.routers.social import router as social_router

__all__ = [
    "account_router",
    "admin_router",
    "comments_router",
    "roots_router",
    "social_router",
]
