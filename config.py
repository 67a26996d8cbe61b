import os

from dotenv import load_dotenv

load_dotenv()

# Database (PostgreSQL in production, where the cast_vote procedure lives)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///votes.db")

# Admin code seeded into the config row by `flask init-db`
ADMIN_CODE = os.getenv("ADMIN_CODE", "admin")

# Fallback school name when the admin saves branding without one
DEFAULT_SCHOOL_NAME = os.getenv("DEFAULT_SCHOOL_NAME", "Colegio")

# Phrase the admin must type to wipe every table
CLEAR_DATA_CONFIRMATION = os.getenv("CLEAR_DATA_CONFIRMATION", "ELIMINAR TODO")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Access codes are GGCLL, so list numbers stop at two digits
MAX_LIST_NUMBER = 99

# Headers the browser clients send
CORS_ALLOW_HEADERS = ["Content-Type", "x-admin-code", "x-vote-password"]
CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
