import os

import uvicorn


def main() -> None:
    """Serve the API with uvicorn. HOST and PORT default to 0.0.0.0:8000."""
    uvicorn.run(
        "app.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
