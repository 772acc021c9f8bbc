import os

import uvicorn

from statement_categorizer.app import app
from statement_categorizer.logger import get_logging_config


def main() -> None:
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run(app, host=host, port=port, log_config=get_logging_config())


if __name__ == "__main__":
    main()
