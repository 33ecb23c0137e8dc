import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "leave_db_test"),
}

JWT_SECRET = "test-jwt-secret"
JWT_ALGORITHM = "HS256"
TOKEN_EXPIRE_DAYS = 7

GOOGLE_CLIENT_ID = "test-client-id.apps.googleusercontent.com"
ALLOWED_EMAIL_DOMAIN = "nitgoa.ac.in"

LOG_LEVEL = "WARNING"
LOG_FORMAT = "text"

DEBUG = False
TESTING = True

AUTO_INIT_DB = False
AUTO_SEED_DB = False
