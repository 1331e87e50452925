import uvicorn
from dotenv import load_dotenv

load_dotenv()

from assessment.config import settings  # noqa: E402

if __name__ == "__main__":
    uvicorn.run(
        "assessment.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
