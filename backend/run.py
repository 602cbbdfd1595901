# backend/run.py
import sys
import uvicorn
from axioscan.config import settings
from axioscan.utils.logging import api_logger

def main():
    api_logger.info("Starting AxioScan API", extra={"storage_path": str(settings.STORAGE_PATH)})
    try:
        uvicorn.run(
            "axioscan.main:app",
            host="0.0.0.0",
            port=8000,
            reload=True
        )
    except Exception as e:
        print(f"Error starting the server: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
