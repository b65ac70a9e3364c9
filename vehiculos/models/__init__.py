from vehiculos.models.entities import Order, OrderStatus, User, UserRole, Vehicle, VehicleStatus

__all__ = ["Order", "OrderStatus", "User", "UserRole", "Vehicle", "VehicleStatus"]
