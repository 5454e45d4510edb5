from dotenv import load_dotenv
import os

load_dotenv()

MIB = 1024 * 1024

DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


class Settings:
    def __init__(self) -> None:
        # Supabase project
        self.SUPABASE_URL = os.getenv('SUPABASE_URL')
        self.SUPABASE_KEY = os.getenv('SUPABASE_KEY') or os.getenv('SUPABASE_ANON_KEY')
        self.SUPABASE_SECRET_KEY = os.getenv('SUPABASE_SECRET_KEY') or os.getenv('SUPABASE_SERVICE_ROLE_KEY')
        self.SUPABASE_JWT_SECRET = os.getenv('SUPABASE_JWT_SECRET')
        # Storage
        self.ATTACHMENT_BUCKET = os.getenv('ATTACHMENT_BUCKET', 'ticket-attachments')
        self.MAX_ATTACHMENT_BYTES = int(os.getenv('MAX_ATTACHMENT_BYTES', 10 * MIB))
        # HTTP
        origins = os.getenv('ALLOWED_ORIGINS')
        self.ALLOWED_ORIGINS = (
            [o.strip() for o in origins.split(',') if o.strip()] if origins else DEFAULT_ALLOWED_ORIGINS
        )
        self.LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

    def get(self, key: str, default=None):
        """Get setting value with optional default (dict-like access)."""
        return getattr(self, key, default)

    def validate(self, *required: str) -> None:
        """Raise if any of the named settings is missing."""
        missing = [name for name in required if not getattr(self, name, None)]
        if missing:
            raise EnvironmentError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


settings = Settings()
