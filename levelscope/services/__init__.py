"""
levelscope Services

Service layer containing the analysis pipeline.
Each service has a defined interface (contract) and implementation.
"""

from levelscope.services.base import BaseService, ServiceError, InputError, ComputationError

__all__ = ["BaseService", "ServiceError", "InputError", "ComputationError"]
