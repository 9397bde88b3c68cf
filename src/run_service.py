from dotenv import load_dotenv
import uvicorn

load_dotenv()

from core import get_settings  # noqa: E402

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "service:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_dev(),
        log_level=settings.LOG_LEVEL.lower(),
    )
