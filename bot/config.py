from __future__ import annotations

from dataclasses import dataclass
import os


TRUTHY_VALUES = {"1", "true", "yes", "on"}
VALID_DISCORD_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///data/bot.db"
DEFAULT_LOGO_PATH = "/srv/samba/share/logo_firma.png"


def env_bool(name: str, *, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in TRUTHY_VALUES


def env_int(name: str, *, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    text = raw.strip()
    if not text:
        return default
    try:
        return int(text)
    except ValueError as exc:
        raise ValueError(f"Invalid integer env {name}={raw!r}") from exc


def default_lock_file() -> str:
    # PID checks are unreliable inside containers, the lock lives in /tmp there.
    if os.getenv("DOCKER_CONTAINER"):
        return "/tmp/bot.lock"
    return "bot.lock"


@dataclass(frozen=True)
class BotConfig:
    discord_token: str
    database_url: str
    db_echo: bool
    enable_message_content_intent: bool
    guild_id: int
    absence_channel_id: int
    sanction_channel_id: int
    tuningchip_channel_id: int
    stance_channel_id: int
    xenon_channel_id: int
    logo_path: str
    submission_window_seconds: float
    lock_file: str
    discord_log_level: str

    def validate(self) -> None:
        if not self.database_url:
            raise ValueError("DATABASE_URL must be set")
        if self.guild_id < 0:
            raise ValueError("GUILD_ID must be >= 0")
        channel_ids = (
            self.absence_channel_id,
            self.sanction_channel_id,
            self.tuningchip_channel_id,
            self.stance_channel_id,
            self.xenon_channel_id,
        )
        if any(channel_id < 0 for channel_id in channel_ids):
            raise ValueError("Channel IDs must be >= 0")
        if self.submission_window_seconds <= 0:
            raise ValueError("SUBMISSION_WINDOW_SECONDS must be > 0")
        if not self.lock_file:
            raise ValueError("LOCK_FILE must not be empty")
        if self.discord_log_level not in VALID_DISCORD_LOG_LEVELS:
            valid = ", ".join(sorted(VALID_DISCORD_LOG_LEVELS))
            raise ValueError(f"DISCORD_LOG_LEVEL must be one of: {valid}")

    def channel_id_for_topic(self, topic: str) -> int:
        return {
            "abmeldung": self.absence_channel_id,
            "tuningchip": self.tuningchip_channel_id,
            "stance": self.stance_channel_id,
            "xenon": self.xenon_channel_id,
        }.get(topic, 0)


def load_config() -> BotConfig:
    cfg = BotConfig(
        discord_token=os.getenv("DISCORD_TOKEN", ""),
        database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
        db_echo=env_bool("DB_ECHO", default=False),
        enable_message_content_intent=env_bool("ENABLE_MESSAGE_CONTENT_INTENT", default=True),
        guild_id=env_int("GUILD_ID", default=0),
        absence_channel_id=env_int("ABMELDUNG_CHANNEL_ID", default=1438789068136648754),
        sanction_channel_id=env_int("SANKTION_CHANNEL_ID", default=1449796531413586131),
        tuningchip_channel_id=env_int("TUNINGCHIP_CHANNEL_ID", default=1416981931324604516),
        stance_channel_id=env_int("STANCE_CHANNEL_ID", default=1416976497708892230),
        xenon_channel_id=env_int("XENON_CHANNEL_ID", default=1416976639690281141),
        logo_path=os.getenv("LOGO_PATH", DEFAULT_LOGO_PATH),
        submission_window_seconds=float(env_int("SUBMISSION_WINDOW_SECONDS", default=60)),
        lock_file=os.getenv("LOCK_FILE", "") or default_lock_file(),
        discord_log_level=os.getenv("DISCORD_LOG_LEVEL", "INFO").strip().upper(),
    )
    cfg.validate()
    return cfg
