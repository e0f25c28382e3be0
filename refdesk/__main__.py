"""Run the refdesk API with uvicorn."""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "refdesk.api.main:app",
        host=os.environ.get("REFDESK_HOST", "127.0.0.1"),
        port=int(os.environ.get("REFDESK_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
