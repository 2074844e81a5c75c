import uvicorn

from creative_studio.config import settings


def main() -> None:
    uvicorn.run("creative_studio.app:app", host=settings.app_host, port=settings.app_port)


if __name__ == "__main__":
    main()
