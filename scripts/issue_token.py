import argparse
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()

from auth.jwt import issue_token  # noqa: E402
from core import get_settings  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Mint a bearer token signed with JWT_SECRET.")
    parser.add_argument("subject", help="value of the sub claim, e.g. a service account name")
    parser.add_argument("--hours", type=int, default=None, help="lifetime, defaults to TOKEN_TTL_HOURS")
    args = parser.parse_args()

    settings = get_settings()
    token, expires_at = issue_token(
        args.subject,
        settings.JWT_SECRET.get_secret_value(),
        ttl=timedelta(hours=args.hours or settings.TOKEN_TTL_HOURS),
        algorithm=settings.JWT_ALGORITHM,
    )
    print(token)
    print(f"expires at {expires_at.isoformat()}")


if __name__ == "__main__":
    main()
