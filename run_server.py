#!/usr/bin/env python
import uvicorn
import sys
import os
import logging
from dotenv import load_dotenv

if __name__ == "__main__":
    # Load environment variables
    load_dotenv()

    # Add the current directory to Python path
    sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

    from drm_backend.config.env import Env

    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger("run_server")

    env = Env.from_environ()
    missing = env.missing_required()
    if missing:
        logger.error(f"❌ Missing required environment variables: {', '.join(missing)}")
        logger.error("   Copy .env.example to .env and fill in the values.")
        sys.exit(1)
    missing_token = env.missing_token_vars()
    if missing_token:
        logger.warning(
            f"⚠️ Token Authorization disabled, missing or invalid: {', '.join(missing_token)}. "
            "Callback Authorization still works."
        )

    # Run the uvicorn server
    uvicorn.run(
        "drm_backend.main:app",
        host=env.host,
        port=env.port,
        reload=env.node_env == "development",
        log_level=env.log_level if env.log_level in ("critical", "error", "warning", "info", "debug", "trace") else "info",
        access_log=True
    )
