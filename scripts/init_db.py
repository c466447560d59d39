#!/usr/bin/env python3
"""
Create the payment_jobs table and its indices.
Run from the project root: python -m scripts.init_db
"""
from hotspot.db.base import Base
from hotspot.db.session import engine
from hotspot.models import payment_job  # noqa: F401  registers the model


def main():
    Base.metadata.create_all(bind=engine)
    print(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")


if __name__ == "__main__":
    main()
