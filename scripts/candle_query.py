import os
import sys

import httpx
from dotenv import load_dotenv

load_dotenv()

BASE_URL = os.getenv("CANDLE_API_URL", "http://127.0.0.1:8000")


def main(code: str, year: str, month: str, day: str, hour: str) -> int:
    with httpx.Client(base_url=BASE_URL, timeout=10) as client:
        status = client.get("/candles/status").json()
        print("Store:", status["state"], "built_at:", status["built_at"], "buckets:", status["buckets"])

        r = client.get(
            "/candle",
            params={"code": code, "year": year, "month": month, "day": day, "hour": hour},
        )
        print(r.status_code, r.json())
        return 0 if r.status_code == 200 else 1


if __name__ == "__main__":
    if len(sys.argv) != 6:
        print("usage: python -m scripts.candle_query CODE YEAR MONTH DAY HOUR")
        sys.exit(2)
    sys.exit(main(*sys.argv[1:]))
