import os
from dotenv import load_dotenv

load_dotenv()

# Directory backend: "appwrite" talks to the Appwrite Users API, "memory" keeps
# accounts in process (development and tests). Read once at startup.
DIRECTORY_BACKEND = os.getenv("DIRECTORY_BACKEND", "appwrite").strip().lower()

# Appwrite Settings
APPWRITE_ENDPOINT = os.getenv("APPWRITE_ENDPOINT")  # e.g. https://cloud.appwrite.io/v1
APPWRITE_PROJECT = os.getenv("APPWRITE_PROJECT")
APPWRITE_API_KEY = os.getenv("APPWRITE_API_KEY")

# Preference keys on the account record
WALLET_PREF_KEY = os.getenv("WALLET_PREF_KEY", "walletAddress")
PASSKEY_PREF_KEY = os.getenv("PASSKEY_PREF_KEY", "passkeyCredentials")

# JWT Settings
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", 30))

# Allowed browser origins, comma separated
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Accept "auth-<millis>" challenges the client derived itself (reference wallet flow).
ALLOW_CLIENT_CHALLENGES = os.getenv("ALLOW_CLIENT_CHALLENGES", "false").strip().lower() in ("1", "true", "yes")

# --- Timeouts and lifetimes (seconds) ---
# Load as string and convert to int, falling back to the default if invalid
try:
    CHALLENGE_TTL_SECONDS = int(os.getenv("CHALLENGE_TTL_SECONDS", "300"))
except ValueError:
    print("Warning: Invalid CHALLENGE_TTL_SECONDS in .env file. Defaulting to 300.")
    CHALLENGE_TTL_SECONDS = 300

try:
    EXCHANGE_TOKEN_EXPIRE_SECONDS = int(os.getenv("EXCHANGE_TOKEN_EXPIRE_SECONDS", "900"))
except ValueError:
    print("Warning: Invalid EXCHANGE_TOKEN_EXPIRE_SECONDS in .env file. Defaulting to 900.")
    EXCHANGE_TOKEN_EXPIRE_SECONDS = 900

try:
    APPWRITE_TIMEOUT_SECONDS = float(os.getenv("APPWRITE_TIMEOUT_SECONDS", "10"))
except ValueError:
    print("Warning: Invalid APPWRITE_TIMEOUT_SECONDS in .env file. Defaulting to 10.")
    APPWRITE_TIMEOUT_SECONDS = 10.0

# Basic validation
if DIRECTORY_BACKEND not in ("appwrite", "memory"):
    print(f"Warning: Unknown DIRECTORY_BACKEND '{DIRECTORY_BACKEND}'. Defaulting to 'appwrite'.")
    DIRECTORY_BACKEND = "appwrite"
if DIRECTORY_BACKEND == "appwrite" and not (APPWRITE_ENDPOINT and APPWRITE_PROJECT and APPWRITE_API_KEY):
    print("Warning: APPWRITE_ENDPOINT, APPWRITE_PROJECT or APPWRITE_API_KEY not found in .env file. Directory calls will fail.")
if not JWT_SECRET_KEY:
    print("Warning: JWT_SECRET_KEY not found in .env file. Session tokens cannot be issued.")
