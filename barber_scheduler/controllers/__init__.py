# Controllers package initialization
# Each module exposes one Blueprint registered by ``create_app``

from .appointment_controller import appointment_bp
from .availability_controller import availability_bp
from .inventory_controller import inventory_bp

__all__ = ["appointment_bp", "availability_bp", "inventory_bp"]
