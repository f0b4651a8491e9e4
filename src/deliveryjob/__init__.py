"""
delivery-job - run Chef Delivery pipeline phases locally or in a container
"""

__version__ = "0.1.0"

from .core import DeliveryJob
from .errors import DeliveryError

__all__ = ["DeliveryJob", "DeliveryError"]
