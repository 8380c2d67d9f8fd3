"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, secrets, API keys)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="secondhome",
        description="MongoDB database name"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )
    SLOW_REQUEST_SECONDS: float = Field(
        default=5.0,
        description="Requests slower than this are logged as warnings"
    )
    SITE_URL: str = Field(
        default="http://localhost:3000",
        description="Public frontend URL used in links and payment callbacks"
    )
    SITE_NAME: str = Field(
        default="Second Home",
        description="Brand name used in messages"
    )

    # Security / JWT
    SECRET_KEY: str = Field(
        default="change-me-in-production",
        description="Secret key used to sign JWTs"
    )
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_DAYS: int = Field(
        default=7,
        description="Access token lifetime in days"
    )
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(
        default=30,
        description="Refresh token lifetime in days"
    )
    BCRYPT_ROUNDS: int = Field(default=12)

    # OTP
    OTP_EXPIRY_MINUTES: int = Field(
        default=10,
        description="OTP validity window in minutes"
    )

    # Email (SMTP)
    SMTP_HOST: str = Field(default="smtp.gmail.com")
    SMTP_PORT: int = Field(default=587)
    SMTP_USER: Optional[str] = Field(default=None)
    SMTP_PASSWORD: Optional[str] = Field(default=None)
    SMTP_FROM_NAME: str = Field(default="Second Home")
    OFFICIAL_EMAIL: Optional[str] = Field(
        default=None,
        description="Internal inbox copied on subscription requests"
    )

    # Twilio SMS
    TWILIO_ACCOUNT_SID: Optional[str] = Field(default=None)
    TWILIO_AUTH_TOKEN: Optional[str] = Field(default=None)
    TWILIO_PHONE_NUMBER: Optional[str] = Field(default=None)
    SKIP_SMS: bool = Field(
        default=False,
        description="Return phone OTPs in the response instead of sending SMS"
    )

    # Razorpay
    RAZORPAY_KEY_ID: Optional[str] = Field(default=None)
    RAZORPAY_KEY_SECRET: Optional[str] = Field(default=None)
    RAZORPAY_WEBHOOK_SECRET: Optional[str] = Field(default=None)

    # Merchant UPI fallback
    MERCHANT_UPI_ID: Optional[str] = Field(default=None)
    MERCHANT_ACCOUNT_NAME: str = Field(default="Second Home")
    MERCHANT_ACCOUNT_NUMBER: Optional[str] = Field(default=None)
    MERCHANT_IFSC: Optional[str] = Field(default=None)
    MERCHANT_BANK_NAME: Optional[str] = Field(default=None)

    # AI review (Groq, OpenAI-compatible)
    GROQ_API_KEY: Optional[str] = Field(default=None)
    GROQ_BASE_URL: str = Field(default="https://api.groq.com/openai/v1")
    GROQ_MODEL: str = Field(default="llama-3.3-70b-versatile")
    AI_TIMEOUT: int = Field(
        default=30,
        description="AI completion request timeout in seconds"
    )

    # Geocoding
    GOOGLE_MAPS_API_KEY: Optional[str] = Field(default=None)
    GEOCODE_USER_AGENT: str = Field(default="SecondHome/1.0 (contact@secondhome.local)")
    GEOCODE_TIMEOUT: int = Field(default=10)

    # Cloudinary
    CLOUDINARY_CLOUD_NAME: Optional[str] = Field(default=None)
    CLOUDINARY_API_KEY: Optional[str] = Field(default=None)
    CLOUDINARY_API_SECRET: Optional[str] = Field(default=None)

    # Admin bootstrap
    ADMIN_EMAIL: Optional[str] = Field(default=None)
    ADMIN_PASSWORD: Optional[str] = Field(default=None)
    ADMIN_NAME: str = Field(default="Admin")
    ADMIN_SEED_TOKEN: Optional[str] = Field(default=None)

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_secret_key(cls, v, info):
        """Ensure secret key is changed in production."""
        if info.data.get("ENVIRONMENT") == "production" and v == "change-me-in-production":
            raise ValueError("SECRET_KEY must be changed in production environment")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if not settings.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if not settings.MONGODB_DB_NAME:
        errors.append("MONGODB_DB_NAME is required")

    # Production-specific validations
    if settings.is_production:
        if not (settings.SMTP_USER and settings.SMTP_PASSWORD):
            errors.append("SMTP_USER and SMTP_PASSWORD are required in production")
        if settings.SKIP_SMS:
            errors.append("SKIP_SMS must be disabled in production")
        if settings.RAZORPAY_KEY_ID and not settings.RAZORPAY_WEBHOOK_SECRET:
            errors.append("RAZORPAY_WEBHOOK_SECRET is required when Razorpay is enabled")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
