"""SRTMotion application entry point."""

import sys

# SIGABRT 등 크래시 시 Python 트레이스백 출력 (원인 분석용)
try:
    import faulthandler
    faulthandler.enable(all_threads=True)
except Exception:
    pass

from srtmotion.app import main

if __name__ == "__main__":
    sys.exit(main())
