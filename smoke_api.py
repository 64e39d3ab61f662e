"""Smoke test of the HTTP API against a running server."""

import json
import requests

BASE_URL = "http://127.0.0.1:3001"


def show(response):
    print(f"status: {response.status_code}")
    print(json.dumps(response.json(), ensure_ascii=False, indent=2))
    return response.json()


def smoke_api():
    print("=" * 50)
    print("Werewolf Web API smoke run")
    print("=" * 50)

    print("\n1. API info...")
    show(requests.get(f"{BASE_URL}/"))

    print("\n2. Create a game...")
    game = show(requests.post(f"{BASE_URL}/games", json={"seed": 42, "moderator_name": "Moderator"}))
    code = game["code"]

    print(f"\n3. Six players join {code}...")
    for name in ["Alice", "Bastien", "Chloe", "Damien", "Elise", "Fabien"]:
        requests.post(f"{BASE_URL}/games/{code}/players", json={"name": name})

    print("\n4. Deal the default roles...")
    show(requests.post(f"{BASE_URL}/games/{code}/roles", json={}))

    print("\n5. Walk the phases up to the vote...")
    for _ in range(6):
        change = requests.post(f"{BASE_URL}/games/{code}/phase/advance").json()
        print(f"{change['previous']} -> {change['current']}")
        if change["current"] == "day_vote":
            break

    print("\n6. Status...")
    show(requests.get(f"{BASE_URL}/games/{code}/status"))

    print("\n" + "=" * 50)
    print("Done!")
    print("=" * 50)


if __name__ == "__main__":
    try:
        smoke_api()
    except requests.exceptions.ConnectionError:
        print("Error: cannot reach the server. Start it with:")
        print("  python -m werewolf.web")
    except Exception as e:
        print(f"Error: {e}")
