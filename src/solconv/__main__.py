from __future__ import annotations

from solconv.cli import app


def main() -> None:
    app()


if __name__ == "__main__":
    main()
