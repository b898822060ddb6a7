from fastapi import HTTPException, status


class AppError(HTTPException):
    """Domain error that renders as an HTTP response with a readable message."""

    status_code = status.HTTP_400_BAD_REQUEST
    message = "Request could not be completed"

    def __init__(self, message: str = None, headers: dict = None):
        super().__init__(status_code=self.status_code, detail=message or self.message, headers=headers)


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Could not validate credentials"

    def __init__(self, message: str = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class MerchantRequired(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Merchant access required"


class CustomerNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Customer not found"


class InsufficientCredits(AppError):
    message = "No credits remaining. Please purchase more credits."


# Coupons
class CouponNotFound(AppError):
    message = "Invalid coupon code"


class CouponInactive(AppError):
    message = "Coupon is no longer active"


class CouponExpired(AppError):
    message = "Coupon has expired"


class CouponExhausted(AppError):
    message = "Coupon has reached maximum uses"


class CouponAlreadyRedeemed(AppError):
    message = "You have already used this coupon"


class CouponCodeTaken(AppError):
    message = "Coupon code already exists"


# Designs
class DesignNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Design not found"


class DesignNotReady(AppError):
    message = "Design is not ready to be ordered"


class DesignHasOrders(AppError):
    status_code = status.HTTP_409_CONFLICT
    message = "Designs with orders cannot be deleted"


class GalleryFull(AppError):
    message = "Your design gallery is full. Please delete some designs to save new ones."


class GenerationFailed(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    message = "Failed to generate artwork. Your credit has been refunded."


# Catalogue
class ProductTypeNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Product type not found"


class InvalidProductOption(AppError):
    message = "Invalid product option"


class InvalidProductConfig(AppError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    message = "Invalid product configuration"


# Orders
class OrderNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Order not found"


class InvalidStatusTransition(AppError):
    message = "Invalid order status transition"
