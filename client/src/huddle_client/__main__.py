"""Run the huddle chat room client."""

from . import Client


def main() -> None:
    """Start the client with settings from the environment."""
    client = Client()
    client.run()


if __name__ == "__main__":
    main()
