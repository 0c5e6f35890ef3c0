import uvicorn

from askdata.settings import HOST, LOG_LEVEL, PORT


def main():
    uvicorn.run("askdata.main:app", host=HOST, port=PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
