# tiffin/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Платёжный шлюз (Razorpay-совместимый API)
    GATEWAY_KEY_ID: str
    GATEWAY_KEY_SECRET: str
    GATEWAY_API_URL: str = "https://api.razorpay.com/v1"
    GATEWAY_CURRENCY: str = "INR"
    GATEWAY_TIMEOUT: float = 10.0

    ADMIN_KEY: str                 # ключ администратора (?key=...)

    DATABASE_URL: str = "sqlite+aiosqlite:///./orders.db"
    DB_ECHO: bool = False

    # Сообщения клиенту (Twilio-совместимый API)
    MESSAGING_ACCOUNT_SID: str = ""
    MESSAGING_AUTH_TOKEN: str = ""
    MESSAGING_FROM: str = ""
    MESSAGING_CHANNEL: str = "whatsapp"
    MESSAGING_API_URL: str = "https://api.twilio.com/2010-04-01"
    MESSAGING_TIMEOUT: float = 10.0
    MESSAGING_COUNTRY_CODE: str = "+91"
    APPROVAL_TEMPLATE: str = (
        "Hi {name}, your order {code} has been approved! "
        "Total: Rs.{total}. It will reach you soon."
    )

    # Тарифы доставки
    DELIVERY_FEE: int = 30
    FREE_DELIVERY_THRESHOLD: int = 120

    STATIC_DIR: str = "public"
    HOST: str = "0.0.0.0"
    PORT: int = 5000

    LOG_DIR: str = "tiffin/log"
    LOG_PRINT: str = "1"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
