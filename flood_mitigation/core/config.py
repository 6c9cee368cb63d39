"""
Application configuration management using Pydantic Settings.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application
    app_name: str = Field(default="Flood Mitigation Monitor", alias="APP_NAME")
    debug: bool = Field(default=False, alias="DEBUG")
    version: str = Field(default="1.0.0", alias="VERSION")

    # API
    api_prefix: str = Field(default="/api/v1", alias="API_PREFIX")
    # WARNING: CORS_ORIGINS set to "*" is for development only.
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="console", alias="LOG_FORMAT")

    # MQTT broker
    mqtt_broker_host: str = Field(default="broker.hivemq.com", alias="MQTT_BROKER_HOST")
    mqtt_broker_port: int = Field(default=1883, alias="MQTT_BROKER_PORT")
    mqtt_keepalive: int = Field(default=60, alias="MQTT_KEEPALIVE")
    mqtt_username: Optional[str] = Field(default=None, alias="MQTT_USERNAME")
    mqtt_password: Optional[str] = Field(default=None, alias="MQTT_PASSWORD")
    mqtt_client_prefix: str = Field(default="flood-simulator", alias="MQTT_CLIENT_PREFIX")
    mqtt_reconnect_min_delay: int = Field(default=1, alias="MQTT_RECONNECT_MIN_DELAY")
    mqtt_reconnect_max_delay: int = Field(default=30, alias="MQTT_RECONNECT_MAX_DELAY")

    # Topics
    sensor_topic: str = Field(
        default="flood-mitigation/sensors/data", alias="SENSOR_TOPIC"
    )
    weather_topic: str = Field(
        default="flood-mitigation/weather/data", alias="WEATHER_TOPIC"
    )
    prediction_topic: str = Field(
        default="flood-mitigation/prediction/data", alias="PREDICTION_TOPIC"
    )

    # Simulation
    deployment_profile: str = Field(default="flood", alias="DEPLOYMENT_PROFILE")
    scenario: str = Field(default="normal", alias="SCENARIO")
    simulation_seed: Optional[int] = Field(default=None, alias="SIMULATION_SEED")
    sensor_interval_seconds: float = Field(default=5.0, alias="SENSOR_INTERVAL_SECONDS")
    weather_interval_seconds: float = Field(
        default=30.0, alias="WEATHER_INTERVAL_SECONDS"
    )
    prediction_interval_seconds: float = Field(
        default=15.0, alias="PREDICTION_INTERVAL_SECONDS"
    )
    simulator_enabled: bool = Field(default=True, alias="SIMULATOR_ENABLED")

    # Dashboard consumer
    consumer_enabled: bool = Field(default=True, alias="CONSUMER_ENABLED")
    dashboard_window_size: int = Field(default=50, alias="DASHBOARD_WINDOW_SIZE")

    # Notifications
    telegram_bot_token: Optional[str] = Field(default=None, alias="TELEGRAM_BOT_TOKEN")
    telegram_api_url: str = Field(
        default="https://api.telegram.org", alias="TELEGRAM_API_URL"
    )
    twilio_account_sid: Optional[str] = Field(default=None, alias="TWILIO_ACCOUNT_SID")
    twilio_auth_token: Optional[str] = Field(default=None, alias="TWILIO_AUTH_TOKEN")
    twilio_phone_number: str = Field(
        default="whatsapp:+14155238886", alias="TWILIO_PHONE_NUMBER"
    )
    twilio_api_url: str = Field(
        default="https://api.twilio.com/2010-04-01", alias="TWILIO_API_URL"
    )
    notification_timeout: int = Field(default=10, alias="NOTIFICATION_TIMEOUT")

    # Automatic alerts
    alert_telegram_chat_id: Optional[str] = Field(
        default=None, alias="ALERT_TELEGRAM_CHAT_ID"
    )
    alert_cooldown_minutes: float = Field(default=10, alias="ALERT_COOLDOWN_MINUTES")
    critical_alert_only: bool = Field(default=False, alias="CRITICAL_ALERT_ONLY")

    model_config = {"env_file": ".env", "case_sensitive": False}

    @property
    def cors_origins_list(self) -> List[str]:
        """Convert CORS origins string to list."""
        if self.cors_origins == "*":
            return ["*"]
        if self.cors_origins.strip().startswith("["):
            import json

            try:
                return json.loads(self.cors_origins)
            except json.JSONDecodeError:
                # Fallback to comma split if json parse fails
                pass
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def topics(self) -> List[str]:
        return [self.sensor_topic, self.weather_topic, self.prediction_topic]


# Global settings instance
settings = Settings()
