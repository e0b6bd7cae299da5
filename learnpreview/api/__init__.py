"""Learn API 模块"""

from .client import ApiRequestError, LearnApiClient
from .models import BuildJob, BuildStatus, DeliveryCredentials

__all__ = [
    "ApiRequestError",
    "LearnApiClient",
    "BuildJob",
    "BuildStatus",
    "DeliveryCredentials",
]
