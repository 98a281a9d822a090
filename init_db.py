import config
from dal import get_or_create_user
from db import engine, get_session
from models import Base


def main():
    config.configure_logging()
    Base.metadata.create_all(bind=engine)
    # Optional: ensure a demo user exists
    with get_session() as s:
        get_or_create_user(s, "demo")


if __name__ == "__main__":
    main()
