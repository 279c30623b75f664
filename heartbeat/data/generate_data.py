"""Demo data generator for the ECG heartbeat API.

Registers (or reuses) a demo user, logs in, and posts heart rate readings
concurrently:
- BPM values spread across bradycardia, normal and tachycardia bands
- Bounded concurrency with an asyncio semaphore
- Summary of accepted/failed requests and the resulting history size
"""

import asyncio
import os
import random
import time
from typing import List, Optional, Tuple

import httpx

# Configuration
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:3000")
TOTAL_READINGS = 200
MAX_CONCURRENT_REQUESTS = 10
DEMO_USER = {
    "username": "demo_user",
    "password": "demo_password",
    "age": 30,
    "gender": "female",
}

# (low, high, weight) per band
BPM_BANDS: List[Tuple[int, int, float]] = [
    (40, 59, 0.15),   # Bradycardia
    (60, 100, 0.7),   # Normal
    (101, 160, 0.15),  # Tachycardia
]


def generate_bpm_values(count: int, seed: Optional[int] = None) -> List[int]:
    """Generate ``count`` BPM values drawn from the weighted bands."""
    rng = random.Random(seed)
    weights = [band[2] for band in BPM_BANDS]
    values = []
    for _ in range(count):
        low, high, _weight = rng.choices(BPM_BANDS, weights=weights)[0]
        values.append(rng.randint(low, high))
    return values


async def ensure_demo_user(client: httpx.AsyncClient) -> dict:
    """Register the demo user if needed and return the logged-in user."""
    response = await client.post(f"{API_BASE_URL}/api/auth/register", json=DEMO_USER)
    if response.status_code not in (201, 400):
        response.raise_for_status()

    response = await client.post(
        f"{API_BASE_URL}/api/auth/login",
        json={"username": DEMO_USER["username"], "password": DEMO_USER["password"]},
    )
    response.raise_for_status()
    return response.json()["user"]


async def send_reading(client: httpx.AsyncClient, user: dict, bpm: int) -> bool:
    """Post one reading. Returns True when it was stored."""
    try:
        response = await client.post(
            f"{API_BASE_URL}/api/ecg/save",
            json={"userId": user["id"], "username": user["username"], "bpm": bpm},
        )
        return response.status_code == 201
    except httpx.HTTPError as e:
        print(f"\n[DEBUG] {type(e).__name__}: {str(e)[:200]}")
        return False


async def generate_and_send_data() -> None:
    """Main function to generate and send demo readings."""
    limits = httpx.Limits(max_keepalive_connections=20, max_connections=50)
    timeout = httpx.Timeout(10.0, connect=2.0)

    async with httpx.AsyncClient(limits=limits, timeout=timeout) as client:
        # Check API is available
        try:
            health = await client.get(f"{API_BASE_URL}/health", timeout=2.0)
            health.raise_for_status()
        except httpx.HTTPError:
            print(f"ERROR: Cannot connect to API at {API_BASE_URL}")
            print("Make sure the server is running: heartbeat-api")
            return

        if health.json().get("database") != "connected":
            print(f"ERROR: API database is {health.json().get('database')!r}")
            return

        user = await ensure_demo_user(client)
        bpm_values = generate_bpm_values(TOTAL_READINGS)
        print(f"Sending {len(bpm_values)} readings for user {user['username']} (id={user['id']})")

        semaphore = asyncio.Semaphore(MAX_CONCURRENT_REQUESTS)
        start = time.time()

        async def send_with_semaphore(bpm: int) -> bool:
            async with semaphore:
                return await send_reading(client, user, bpm)

        results = await asyncio.gather(*(send_with_semaphore(bpm) for bpm in bpm_values))
        elapsed = time.time() - start
        rate = len(results) / elapsed if elapsed > 0 else 0

        history = await client.get(f"{API_BASE_URL}/api/ecg/history/{user['id']}")
        history.raise_for_status()

        accepted = sum(results)
        print("=" * 60)
        print(f"Readings stored: {accepted}")
        print(f"Readings failed: {len(results) - accepted}")
        print(f"Elapsed: {elapsed:.2f}s ({rate:.1f} req/s)")
        print(f"History size: {history.json()['count']}")
        print("=" * 60)


if __name__ == "__main__":
    print("ECG Heartbeat Demo Data Generator")
    print("=" * 60)
    asyncio.run(generate_and_send_data())
