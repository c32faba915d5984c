import os

from dotenv import load_dotenv

from quantflow.config import ServerConfig
from quantflow.server import SignalServer
from quantflow.utils.logger import setup_logger

def _env_float(key: str, default: float) -> float:
    raw = os.environ.get(key, "")
    if not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        print(f"Warning: Invalid {key} '{raw}', defaulting to {default}")
        return default

def _env_int(key: str, default):
    raw = os.environ.get(key, "")
    if not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        print(f"Warning: Invalid {key} '{raw}', defaulting to {default}")
        return default

def load_config() -> ServerConfig:
    # --- Load config from env or defaults ---
    return ServerConfig(
        host=os.environ.get("QF_HOST", "0.0.0.0"),
        port=_env_int("QF_PORT", 3000),
        feedback_path=os.environ.get("QF_FEEDBACK_PATH", "feedback_db.json"),
        tick_interval=_env_float("QF_TICK_INTERVAL", 2.0),
        history_size=_env_int("QF_HISTORY_SIZE", 100),
        max_candles=_env_int("QF_MAX_CANDLES", 100),
        seed=_env_int("QF_SEED", None),
        min_winrate=_env_float("QF_MIN_WINRATE", 90.0),
        mute_seconds=_env_int("QF_MUTE_SECONDS", 300),
        loss_penalty=_env_float("QF_LOSS_PENALTY", 5.0),
        similarity_threshold=_env_float("QF_SIMILARITY", 0.7),
        recent_feedback_window=_env_int("QF_RECENT_WINDOW", 20),
        log_level=os.environ.get("QF_LOG_LEVEL", "INFO"),
    )

def main():
    load_dotenv()
    cfg = load_config()
    setup_logger(level=cfg.log_level)

    server = SignalServer(cfg)
    try:
        server.run()
    except KeyboardInterrupt:
        pass

if __name__ == "__main__":
    main()
