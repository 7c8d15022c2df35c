"""Environment-driven settings."""
import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

SECRET_KEY = os.getenv("SECRET_KEY", "supersecretkey")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))

CURRENCY = os.getenv("CURRENCY", "USD")
CART_TTL_DAYS = int(os.getenv("CART_TTL_DAYS", 7))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PORT = int(os.getenv("PORT", 8000))
# gateways report test mode outside production
ENVIRONMENT = os.getenv("ENVIRONMENT", "production")
