import os
from functools import lru_cache

from dotenv import load_dotenv

# .env must be loaded before the class body reads the environment
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    APP_VERSION: str = "1.0.0"
    MODEL_VERSION: str = "v1-logit-gd"
    SCHEMA_VERSION: str = "v1-training"

    # --- CONFIG ---
    ENV = os.getenv("SCHOLARMATCH_ENV", "production")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./scholarmatch.db")
    SQL_ECHO = _env_bool("SQL_ECHO", False)

    # --- AUTO-TRAINING ---
    AUTO_TRAINING_ENABLED = _env_bool("AUTO_TRAINING_ENABLED", True)
    MIN_SAMPLES_GLOBAL = int(os.getenv("MIN_SAMPLES_GLOBAL", "50"))
    MIN_SAMPLES_SCHOLARSHIP = int(os.getenv("MIN_SAMPLES_SCHOLARSHIP", "30"))
    GLOBAL_RETRAIN_INTERVAL = int(os.getenv("GLOBAL_RETRAIN_INTERVAL", "10"))
    AUTO_TRAIN_LOG_SIZE = int(os.getenv("AUTO_TRAIN_LOG_SIZE", "100"))
    AUTO_TRAIN_WORKERS = int(os.getenv("AUTO_TRAIN_WORKERS", "2"))

    # --- GRADIENT DESCENT ---
    LEARNING_RATE = float(os.getenv("LEARNING_RATE", "0.5"))
    MAX_ITERATIONS = int(os.getenv("MAX_ITERATIONS", "2000"))
    CONVERGENCE_TOLERANCE = float(os.getenv("CONVERGENCE_TOLERANCE", "1e-7"))
    L2_STRENGTH = float(os.getenv("L2_STRENGTH", "1e-4"))
    K_FOLDS = int(os.getenv("K_FOLDS", "5"))
    RANDOM_SEED = int(os.getenv("RANDOM_SEED", "42"))
    CLASS_WEIGHTING = _env_bool("CLASS_WEIGHTING", True)

    # --- FEATURES ---
    # annual family income (PHP) treated as "no financial need"
    INCOME_REFERENCE_CEILING = float(os.getenv("INCOME_REFERENCE_CEILING", "1000000"))


@lru_cache
def get_settings():
    return Settings()
