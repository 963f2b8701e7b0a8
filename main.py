import os

import uvicorn
from dotenv import load_dotenv

load_dotenv()

from syllabot.main import app  # noqa: E402

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
