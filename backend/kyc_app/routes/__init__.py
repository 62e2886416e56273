from kyc_app.routes.kyc import router as kyc_router
from kyc_app.routes.admin import router as admin_router

__all__ = ["kyc_router", "admin_router"]
