"""Environment-variable-based configuration for the replay driver."""

from __future__ import annotations

import os

LTHR_BPM: int = int(os.environ.get("WORKOUT_LTHR_BPM", "170"))
FTP_WATTS: int = int(os.environ.get("WORKOUT_FTP_WATTS", "250"))
CALIBRATION_MAX_RUNS: int = int(os.environ.get("CALIBRATION_MAX_RUNS", "10"))
CALIBRATION_DEGREE: int = int(os.environ.get("CALIBRATION_DEGREE", "3"))
IN_BAND_POLICY: str = os.environ.get("WORKOUT_IN_BAND_POLICY", "HOLD").upper()
