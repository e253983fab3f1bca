import uvicorn

from webproxy.vars import HOST, PORT


def main():
    uvicorn.run("webproxy.server:app", host=HOST, port=PORT, log_level="info")


if __name__ == "__main__":
    main()
