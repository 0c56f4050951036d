class OrderServiceError(Exception):
    pass


class OrderValidationError(OrderServiceError):
    pass


class InsufficientStockError(OrderServiceError):
    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Insufficient stock for product {product_id}")


class NotFoundError(OrderServiceError):
    pass


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product not found with id: {product_id}")


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order not found with id: {order_id}")


class DownstreamUnavailableError(OrderServiceError):
    pass


class PersistenceError(OrderServiceError):
    pass
