import os
from dotenv import load_dotenv


load_dotenv()


class Settings:
    DB_URL: str = os.getenv("DATABASE_URL", "sqlite:///./bingo.db")

    MAX_PLAYERS = int(os.getenv("BINGO_MAX_PLAYERS", "2"))
    TURN_SECONDS = int(os.getenv("BINGO_TURN_SECONDS", "30"))
    PLAYER_SECONDS = int(os.getenv("BINGO_PLAYER_SECONDS", "300"))
    SETUP_SECONDS = int(os.getenv("BINGO_SETUP_SECONDS", "120"))

    BOT_THINK_SECONDS = float(os.getenv("BINGO_BOT_THINK", "1.5"))
    BOT_DIFFICULTY: str = os.getenv("BINGO_BOT_DIFFICULTY", "normal")
    BOT_NAME = "Bingo Bot"

    VARIANT: str = os.getenv("BINGO_VARIANT", "standard")

    OPTIMISTIC_RETRIES = 3

    if not DB_URL:
        raise RuntimeError("DATABASE_URL not set in .env")

    variants: dict = {
        "standard": {"pool_size": 75, "win_lines": 5},
        "classic": {"pool_size": 25, "win_lines": 1},
    }


settings = Settings()
