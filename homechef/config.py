"""
Configuration loaded from the environment (.env supported)
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_CORS_ORIGINS = ','.join(
    f'http://localhost:{port}' for port in (5173, 5174, 5175, 5176)
)


class Config:
    APP_ENV = os.getenv('APP_ENV', 'development')
    MONGO_URI = os.getenv('MONGO_URI', 'mongodb://localhost:27017/mishown11DB')
    MONGO_ENSURE_INDEXES = os.getenv('MONGO_ENSURE_INDEXES', 'True').lower() == 'true'

    ACCESS_TOKEN_SECRET = os.getenv('ACCESS_TOKEN_SECRET')
    JWT_EXPIRE_DAYS = int(os.getenv('JWT_EXPIRE_DAYS', 7))

    STRIPE_SECRET_KEY = os.getenv('STRIPE_SECRET_KEY')
    PAYMENT_CURRENCY = os.getenv('PAYMENT_CURRENCY', 'usd')
    FRONTEND_URL = os.getenv('FRONTEND_URL', 'http://localhost:5175')

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv('CORS_ORIGINS', DEFAULT_CORS_ORIGINS).split(',')
        if origin.strip()
    ]

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    PORT = int(os.getenv('PORT', 5000))
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'


def is_production(config):
    return config.get('APP_ENV') == 'production'
