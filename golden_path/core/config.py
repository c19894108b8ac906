"""
Engine configuration settings
"""
import os
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Adaptive core settings with environment variable support"""

    # App
    APP_NAME: str = "Golden Path Adaptive Core"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")  # development, staging, production
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: str = "logs"

    # Bayesian Knowledge Tracing
    BKT_DEFAULT_P_LEARN: float = 0.1
    BKT_DEFAULT_P_GUESS: float = 0.2
    BKT_DEFAULT_P_SLIP: float = 0.1
    BKT_PRIOR_P_KNOWN: float = 0.3
    BKT_MASTERY_HISTORY_LIMIT: int = 500
    BKT_TREND_WINDOW: int = 10
    BKT_TREND_SLOPE_THRESHOLD: float = 0.01

    # EMA smoothing and difficulty calibration
    EMA_ALPHA: float = 0.3
    TARGET_SUCCESS_LOW: float = 0.75
    TARGET_SUCCESS_HIGH: float = 0.85
    TARGET_SUCCESS_RATE: float = 0.8
    DIFFICULTY_STEP: float = 0.05
    DIFFICULTY_MIN: float = 0.1
    DIFFICULTY_MAX: float = 1.0
    DEFAULT_DIFFICULTY: float = 0.5

    # Zone of Proximal Development
    ZPD_LOWER_THRESHOLD: float = 0.4
    ZPD_UPPER_THRESHOLD: float = 0.95
    SUCCESS_CURVE_SLOPE: float = 6.0

    # Fatigue
    FATIGUE_MAX_DURATION_MINUTES: float = 90.0

    # Next-step scoring weights
    STEP_WEIGHT_MASTERY_GAIN: float = 0.3
    STEP_WEIGHT_ENGAGEMENT: float = 0.25
    STEP_WEIGHT_TIME_EFFICIENCY: float = 0.2
    STEP_WEIGHT_PREREQUISITE_COVERAGE: float = 0.15
    STEP_WEIGHT_CURIOSITY_ALIGNMENT: float = 0.1
    STEP_OFF_ZONE_PENALTY: float = 0.3

    # Curiosity engine
    CURIOSITY_CACHE_TTL_SECONDS: int = 300
    CURIOSITY_SIGNAL_LOOKBACK_DAYS: int = 30
    CURIOSITY_EXPECTED_DAILY_SIGNALS: int = 10
    CURIOSITY_CLUSTER_MERGE_THRESHOLD: float = 0.3
    CURIOSITY_MAX_CLUSTER_TOPICS: int = 200
    CURIOSITY_CLUSTER_TIME_BUDGET_SECONDS: float = 2.0
    CURIOSITY_EMERGING_ACCELERATION: float = 2.0
    CURIOSITY_RECENT_WINDOW_DAYS: int = 3
    CURIOSITY_HISTORICAL_WINDOW_DAYS: int = 3
    CURIOSITY_RECENT_SIGNAL_LIMIT: int = 20
    CURIOSITY_SUGGESTION_LIMIT: int = 10
    CURIOSITY_TRIGGER_LIMIT: int = 10
    CURIOSITY_SUGGESTION_PEER_LIMIT: int = 500
    CURIOSITY_TRIGGER_PEER_LIMIT: int = 1000
    CURIOSITY_REFRESH_MAX_RETRIES: int = 3
    CURIOSITY_REFRESH_AUTO_START: bool = True

    # Suggestion and trigger weights (tunable defaults)
    SUGGESTION_WEIGHT_ALIGNMENT: float = 0.45
    SUGGESTION_WEIGHT_POPULARITY: float = 0.25
    SUGGESTION_WEIGHT_CROSS_CURRICULAR: float = 0.15
    SUGGESTION_WEIGHT_NOVELTY: float = 0.15
    TRIGGER_WEIGHT_FREQUENCY: float = 0.6
    TRIGGER_WEIGHT_SIMILARITY: float = 0.4

    # Multi-objective optimizer
    OPTIMIZER_MAX_CANDIDATE_PATHS: int = 100
    OPTIMIZER_MAX_EXPANSION_STEPS: int = 20000
    OPTIMIZER_TIME_BUDGET_SECONDS: float = 2.0
    OPTIMIZER_MAX_FRONT_SIZE: int = 20
    OPTIMIZER_MAX_ALTERNATIVES: int = 5
    OPTIMIZER_RANDOM_SEED: Optional[int] = 42
    OPTIMIZER_DAILY_STUDY_MINUTES: float = 45.0
    OPTIMIZER_TIE_TOLERANCE: float = 0.02
    SIMULATION_INITIAL_ENGAGEMENT: float = 0.85

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="GOLDEN_PATH_",
        case_sensitive=True,
        extra="ignore"
    )
