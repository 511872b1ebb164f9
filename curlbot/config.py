from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OpenAI
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o"
    openai_summary_model: str = "gpt-4o-mini"
    openai_timeout_seconds: float = 20.0
    function_calling_enabled: bool = False
    tool_calls_timeout_seconds: float = 20.0

    # Twilio
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_whatsapp_number: Optional[str] = None
    twilio_validate_signature: bool = False

    # Storage
    redis_url: str = "redis://localhost:6379/0"
    session_ttl_seconds: int = 2592000  # 30 days
    media_storage_dir: str = "/var/lib/curlbot/media"
    database_url: str = "sqlite:///./curlbot.db"

    # Public surface
    public_base_url: str = "https://wa.tataoro.com"
    business_name: str = "Tata Oro"
    handoff_whatsapp_number: str = "16895292934"
    cors_allow_origins: str = "*"

    # Email
    email_enabled: bool = False
    email_provider: str = "resend"
    resend_api_key: Optional[str] = None
    email_from: Optional[str] = None
    email_to: Optional[str] = None

    # Shopify
    shopify_store_domain: Optional[str] = None
    shopify_api_token: Optional[str] = None
    shopify_api_version: str = "2023-04"

    # Booksy
    booksy_api_base: str = "https://us.booksy.com/api/us/2/customer_api"
    booksy_api_key: Optional[str] = None
    booksy_business_id: int = 155582
    booksy_url: str = (
        "https://booksy.com/en-us/155582_akro-beauty-by-la-morocha-makeup_hair-salon_134763_orlando/staffer/880999"
    )
    booksy_staff_name: str = "Tatiana Orozco"
    booksy_cache_ttl_seconds: int = 3600
    booksy_timeout_seconds: float = 3.0

    # Document sync
    github_webhook_secret: Optional[str] = None
    github_raw_base: str = "https://raw.githubusercontent.com"
    github_branch: str = "main"

    # Follow-up scheduler
    scheduler_enabled: bool = True
    scheduler_interval_seconds: float = 900.0
    nudge_after_seconds: int = 7200

    # Admin and alerts
    admin_token: Optional[str] = None
    alert_bot_token: Optional[str] = None
    alert_chat_id: Optional[str] = None

    log_level: str = "INFO"
    log_mask_phones: bool = True

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
