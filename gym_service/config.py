import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./gym.db")

JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", "change-me-too")
JWT_ALGORITHM = "HS256"
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))
JWT_REFRESH_EXPIRES_DAYS = int(os.getenv("JWT_REFRESH_EXPIRES_DAYS", "7"))

KAFKA_BROKER = os.getenv("KAFKA_BROKER")
MEMBERSHIP_STATUS_TOPIC = os.getenv("MEMBERSHIP_STATUS_TOPIC", "membership-status")
CLASS_EVENTS_TOPIC = os.getenv("CLASS_EVENTS_TOPIC", "class-events")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
API_PREFIX = os.getenv("API_PREFIX", "/api/v1")
