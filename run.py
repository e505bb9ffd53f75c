import argparse
import uvicorn
from resourcehub.core.config import settings

def main():
    parser = argparse.ArgumentParser(description="Run the ResourceHub API server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    args = parser.parse_args()

    uvicorn.run(
        "resourcehub.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload or settings.DEBUG,
    )

if __name__ == "__main__":
    main()
