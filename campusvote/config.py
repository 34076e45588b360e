# campusvote/config.py
# Central place for settings read from the environment

import os
from dotenv import load_dotenv

load_dotenv()

# "memory" keeps everything in-process (dev/tests), "mongo" uses MongoDB
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "memory")

# --- Database Config ---
MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "campus_voting")
VOTES_COLLECTION_NAME = "votes"
LEDGER_STATE_COLLECTION_NAME = "ledger_state"
VOTERS_COLLECTION_NAME = "voters"
VERIFIED_IDS_COLLECTION_NAME = "verified_student_ids"
POSITIONS_COLLECTION_NAME = "positions"
CANDIDATES_COLLECTION_NAME = "candidates"
SETTINGS_COLLECTION_NAME = "settings"
ACTIVITY_COLLECTION_NAME = "logs"

# Voting switch used until an admin flips it
VOTING_ENABLED_DEFAULT = os.getenv("VOTING_ENABLED", "false").lower() in ("1", "true", "yes")

# --- Security & JWT Config ---
SECRET_KEY = os.getenv("SECRET_KEY", "a_very_secret_key_for_dev_only")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# Seeded administrator account (skipped when either is empty)
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if o.strip()
]

# Per-subscriber buffer for dashboard notifications
EVENT_QUEUE_SIZE = int(os.getenv("EVENT_QUEUE_SIZE", "100"))
