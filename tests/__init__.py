import os

_defaults = {
    "DATABASE_URL": "sqlite:///:memory:",
    "PRODUCT_SERVICE_URL": "http://product-service",
    "ORDER_SERVICE_URL": "http://order-service",
    "JWT_SECRET_KEY": "testsecret",
    "JWT_ALGORITHM": "HS256",
}

for k, v in _defaults.items():
    os.environ.setdefault(k, v)
