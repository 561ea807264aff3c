from .admin import router as admin_router
from .checkout import router as checkout_router
from .course import router as course_router
from .stripe_webhook import router as stripe_webhook_router

routes = [
    checkout_router,
    stripe_webhook_router,
    course_router,
    admin_router,
]
