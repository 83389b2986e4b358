import uvicorn

from server.config import settings


def main() -> None:
    uvicorn.run("server.app:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
