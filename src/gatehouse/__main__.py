"""gatehouse entrypoint.

Run with:
  python -m gatehouse
"""

import os
import uvicorn

from gatehouse.config import Settings

def main() -> None:
    settings = Settings.from_env()
    reload = os.getenv("GATEHOUSE_RELOAD", "false").lower() in {"1", "true", "yes", "y"}
    uvicorn.run("gatehouse.app:create_app", factory=True, host=settings.host, port=settings.port, reload=reload)

if __name__ == "__main__":
    main()
