import os
from dotenv import load_dotenv

load_dotenv()

# Backing store / auth provider (Supabase) - loaded from .env
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")

# First-party API (the app's own authenticated routes)
STUDIO_API_URL = os.getenv("STUDIO_API_URL", "http://localhost:3000")

# Generation webhooks (server side only)
SAVE_WEBHOOK = os.getenv("SAVE_WEBHOOK")
STATUS_WEBHOOK = os.getenv("STATUS_WEBHOOK")
FETCH_WEBHOOK = os.getenv("FETCH_WEBHOOK")

# Bunny storage zone (server side only)
BUNNY_STORAGE_URL = os.getenv("BUNNY_STORAGE_URL")
BUNNY_ACCESS_KEY = os.getenv("BUNNY_ACCESS_KEY")
BUNNY_CDN_URL = os.getenv("BUNNY_CDN_URL", "https://ess25.b-cdn.net")

# Workflow limits
MAX_SELECTED_IMAGES = 4
POLL_INTERVAL_SECONDS = 10
MAX_POLL_ATTEMPTS = 60  # ~10 minutes
MAX_TRANSPORT_ERRORS = 3
PAGE_SIZE = 18
TRANSACTIONS_PAGE_SIZE = 50
BATCH_URL_LIMIT = 50
MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10MB

# Pricing fallbacks when admin_settings has no row
DEFAULT_CREDIT_PER_IMAGE = 100
DEFAULT_DISCOUNT_RATE = 0

# Storage folders per user
USER_FOLDERS = ["uploads", "image-assets", "video-assets"]
