import logging
import sys

logger = logging.getLogger(__name__)

try:
    from app import app
    logger.info("✅ Crop & Fertilizer Advisor app imported")
except Exception:
    logging.basicConfig(level=logging.ERROR)
    logger.exception("❌ CRITICAL ERROR importing app")
    sys.exit(1)

if __name__ == "__main__":
    app.run()
