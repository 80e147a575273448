from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./gyanshare.db"

    # JWT
    secret_key: str = "your-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Frontend URL for CORS
    frontend_url: str = "http://localhost:3000"

    # Object storage: folder for uploaded notes and fulfillments (empty = backend/uploads)
    storage_dir: str = ""
    # Signed file URL expiry (1 year, same as uploaded notes)
    signed_url_expire_seconds: int = 31536000

    # Note requests
    min_points_offered: int = 5
    max_points_offered: int = 100
    request_expiry_days: int = 30

    # Fulfillment file policy (PDF only)
    fulfillment_min_bytes: int = 200 * 1024
    fulfillment_max_bytes: int = 10 * 1024 * 1024

    # General note uploads
    note_max_bytes: int = 10 * 1024 * 1024
    daily_upload_limit: int = 3

    # Note downloads: base cost plus download_cost_step per download_trust_step trust score
    download_base_cost: int = 50
    download_cost_step: int = 5
    download_trust_step: int = 10

    # Review timers and community thresholds
    auto_review_hours: int = 72
    community_min_votes: int = 3
    community_approve_net: int = 3
    community_reject_net: int = 3
    auto_review_default: str = "rejected"  # approved | rejected
    # Send passing fulfillments straight to community voting instead of the requester
    community_review_on_submit: bool = False

    # Vote spam: max votes per user inside the sliding window
    vote_rate_limit: int = 10
    vote_rate_window_seconds: int = 60

    # Rewards
    signup_bonus_points: int = 0
    upload_bonus_points: int = 10
    profile_bonus_points: int = 30
    referral_bonus_points: int = 20
    referral_monthly_limit: int = 5

    # Expiry / auto-review sweeper
    sweep_interval_seconds: int = 300

    # Vertex AI (Gemini) for AI search
    vertex_project_id: str = ""
    vertex_location: str = "us-central1"
    vertex_credentials_path: str = ""  # path to service account JSON; empty = use ADC
    gemini_model: str = "gemini-2.0-flash"

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
