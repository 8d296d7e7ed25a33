"""
Project-wide defaults.

Every value can be overridden through an environment variable; a value that
does not parse falls back to the default. Command-line flags override both.

    AUTOMATA_DATASET            default IoT dataset path
    AUTOMATA_TRAIN_RATIO        train/test split ratio (default: 0.7)
    AUTOMATA_SEED               shuffle seed (default: 42)
    AUTOMATA_THRESHOLD          simulator block threshold (default: 5)
    AUTOMATA_VERIFY_SENTENCES   grammar sentences enumerated per consistency check (default: 200)
    AUTOMATA_VERIFY_MAX_LENGTH  longest enumerated sentence (default: 12)
    AUTOMATA_PDA_MAX_STEPS      breadth-first PDA search budget (default: 50000)
"""

import os

VERSION = "0.2.0"


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except Exception:
        return default


DEFAULT_IOT_DATASET = os.getenv(
    "AUTOMATA_DATASET",
    "datasets/iotMalware/CTU-IoT-Malware-Capture-1-1conn.log.labeled.csv",
)
DEFAULT_TRAIN_RATIO = _env_float("AUTOMATA_TRAIN_RATIO", 0.7)
DEFAULT_SEED = _env_int("AUTOMATA_SEED", 42)

# Simulator
DEFAULT_THRESHOLD = _env_int("AUTOMATA_THRESHOLD", 5)
AGGREGATE_MODES = ["orig", "resp", "union", "uid"]

# Nested connection-state validation
PDA_PUSH_SYMBOL = "state=S0"
PDA_POP_SYMBOL = "state=SF"
PDA_MAX_STEPS = _env_int("AUTOMATA_PDA_MAX_STEPS", 50000)

# Grammar verification
VERIFY_SENTENCES = max(0, _env_int("AUTOMATA_VERIFY_SENTENCES", 200))
VERIFY_MAX_LENGTH = max(1, _env_int("AUTOMATA_VERIFY_MAX_LENGTH", 12))
