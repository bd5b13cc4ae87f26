import logging
import os

import uvicorn
from dotenv import load_dotenv

load_dotenv()

if __name__ == "__main__":
    logging.basicConfig(level=os.environ.get("AUTODEV_LOG_LEVEL", "INFO"))
    host = os.environ.get("AUTODEV_HOST", "127.0.0.1")
    port = int(os.environ.get("AUTODEV_PORT", "8080"))
    print(f"autodev listening on http://{host}:{port}")
    uvicorn.run("server.api:app", host=host, port=port, reload=False)
