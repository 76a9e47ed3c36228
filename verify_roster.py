import sys

import requests

from roster_api import create_app

BASE_URL = "http://127.0.0.1:5000/api/v1"


def mint_token():
    """Tokens come from the auth service; for a local smoke run mint one with the same secret."""
    from flask_jwt_extended import create_access_token
    app = create_app()
    with app.app_context():
        return create_access_token(identity="smoke", additional_claims={"roles": ["admin"]})


def verify_roster():
    headers = {"Authorization": f"Bearer {mint_token()}"}

    print("1. Listing staff...")
    resp = requests.get(f"{BASE_URL}/master/staff", headers=headers)
    if resp.status_code != 200:
        print(f"List staff failed: {resp.text}")
        sys.exit(1)
    staff = resp.json()["data"]
    print(f"Found {len(staff)} staff.")
    workers = [s for s in staff if s["name"] != "Cover"]
    if not workers:
        print("No staff found. Run flask seed-demo first.")
        return

    print("\n2. Creating a shift...")
    body = {
        "title": "Smoke clean",
        "start_time": "2030-01-02T09:00:00",
        "end_time": "2030-01-02T12:00:00",
        "staff_ids": [workers[0]["id"]],
    }
    resp = requests.post(f"{BASE_URL}/shifts", headers=headers, json=body)
    if resp.status_code != 201:
        print(f"Create shift failed: {resp.text}")
        return
    shift = resp.json()["data"]
    print("Shift:", shift["id"], shift["title"])

    print("\n3. Repeating on Mondays for two weeks...")
    resp = requests.post(
        f"{BASE_URL}/shifts/{shift['id']}/repeat",
        headers=headers,
        json={"weekdays": ["Monday"], "close_date": "2030-01-16"},
    )
    print(resp.status_code, resp.json().get("data") or resp.json().get("error"))

    print("\n4. Start / end job...")
    for action in ("start", "end"):
        resp = requests.post(f"{BASE_URL}/shifts/{shift['id']}/job/{action}", headers=headers)
        print(action, resp.status_code)
    resp = requests.get(f"{BASE_URL}/shifts/{shift['id']}/time-summary", headers=headers)
    print("Summary:", resp.json()["data"]["display"])

    print("\n5. Cancelling...")
    resp = requests.post(f"{BASE_URL}/shifts/{shift['id']}/cancel", headers=headers)
    print(resp.status_code, resp.json().get("error") or resp.json()["data"]["theme"])


if __name__ == "__main__":
    verify_roster()
