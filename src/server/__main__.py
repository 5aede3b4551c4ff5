import uvicorn

from deepread.core import config


def main():
    uvicorn.run("server.app:app", host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
