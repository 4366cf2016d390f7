import os

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


class Config:
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL", f"sqlite:///{os.path.join(BASE_DIR, 'instance', 'shop.db')}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_SIZE_MB", "16")) * 1024 * 1024

    # identity provider
    IDENTITY_JWT_SECRET = os.getenv("IDENTITY_JWT_SECRET", "")
    IDENTITY_JWT_ALGORITHM = os.getenv("IDENTITY_JWT_ALGORITHM", "HS256")
    MEMBER_PLAN = os.getenv("MEMBER_PLAN", "plus")

    # checkout
    SHIPPING_FEE = float(os.getenv("SHIPPING_FEE", "5"))
    CURRENCY = os.getenv("CURRENCY", "aed")
    CHECKOUT_SESSION_MINUTES = int(os.getenv("CHECKOUT_SESSION_MINUTES", "30"))
    STORE_APP_ID = os.getenv("STORE_APP_ID", "")
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

    # upstream services
    UPSTREAM_TIMEOUT = float(os.getenv("UPSTREAM_TIMEOUT", "10"))
    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")
    STRIPE_API_BASE = os.getenv("STRIPE_API_BASE", "https://api.stripe.com/v1")
    IMAGEKIT_PRIVATE_KEY = os.getenv("IMAGEKIT_PRIVATE_KEY", "")
    IMAGEKIT_URL_ENDPOINT = os.getenv("IMAGEKIT_URL_ENDPOINT", "")
    IMAGEKIT_UPLOAD_URL = os.getenv(
        "IMAGEKIT_UPLOAD_URL", "https://upload.imagekit.io/api/v1/files/upload"
    )
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    GEMINI_API_BASE = os.getenv(
        "GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta"
    )


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SECRET_KEY = "test-secret"
    IDENTITY_JWT_SECRET = "test-identity-secret-0123456789abcdef"
    STORE_APP_ID = "TESTSTORE"
    FRONTEND_URL = "http://shop.test"
    STRIPE_SECRET_KEY = "sk_test_123"
    IMAGEKIT_PRIVATE_KEY = "private_test_123"
    IMAGEKIT_URL_ENDPOINT = "https://ik.imagekit.io/shop"
    GEMINI_API_KEY = "gemini-test-key"
