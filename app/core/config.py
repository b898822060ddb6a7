from typing import Dict
from pydantic_settings import BaseSettings
from pydantic import Field

class Settings(BaseSettings):
    PROJECT_NAME: str = "Print Studio API"
    DATABASE_URL: str = "sqlite:///./printstudio.db"
    LOG_LEVEL: str = "INFO"

    # App-issued session tokens
    SECRET_KEY: str = "supersecretkey_change_me_in_production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7 # 1 week
    SESSION_COOKIE_NAME: str = "printstudio_session"

    # Shopify embedded session tokens
    SHOPIFY_API_KEY: str = ""
    SHOPIFY_API_SECRET: str = ""

    # Credits
    STARTING_CREDITS: int = 5
    FREE_GENERATION_ALLOWANCE: int = 0
    CENTS_PER_CREDIT: int = 20 # $1 for 5 credits
    # package id -> (credits, price in cents)
    CREDIT_PACKAGES: Dict[str, tuple[int, int]] = {"5": (5, 100)}

    # Designs
    MAX_DESIGNS_PER_CUSTOMER: int = 50
    DESIGNS_PAGE_SIZE: int = 12
    MAX_PAGE_SIZE: int = 50

    # OpenAI image generation
    OPENAI_API_KEY: str = ""
    IMAGE_MODEL: str = Field("gpt-image-1", validation_alias="OPENAI_IMAGE_MODEL")

    # AWS S3 (generated artwork)
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_REGION: str = "us-east-1"
    S3_BUCKET: str = "printstudio-artwork"

    # Printify fulfillment
    PRINTIFY_API_TOKEN: str = ""
    PRINTIFY_SHOP_ID: str = ""
    PRINTIFY_BASE_URL: str = "https://api.printify.com/v1"

    @property
    def S3_BASE_URL(self) -> str:
        return f"https://{self.S3_BUCKET}.s3.{self.AWS_REGION}.amazonaws.com"

    @property
    def fulfillment_enabled(self) -> bool:
        return bool(self.PRINTIFY_API_TOKEN and self.PRINTIFY_SHOP_ID)

    class Config:
        env_file = ".env"
        extra = "ignore" 


settings = Settings()
