import requests
import json

BASE_URL = "http://127.0.0.1:8000"

# --- smoke payload (camelCase, as the planning wizard sends it) ---
payload = {
    "preferences": {
        "city": "napoli",
        "numDays": 2,
        "travelers": {"adults": 2, "children": 0, "seniors": 0},
        "travelWith": "couple",
        "interests": ["history", "food", "views"],
        "topInterests": ["food"],
        "rhythm": 2,
        "startTime": "normal",
        "lunchStyle": "long",
        "cuisinePreferences": ["traditional"],
        "budget": 2,
        "walkingTolerance": "medium",
        "transport": "walking",
        "wishes": "A sunset by the sea",
        "avoid": ["clubs"],
    }
}

def run_smoke():
    url = f"{BASE_URL}/api/itinerary"
    headers = {"Content-Type": "application/json"}

    print(f"➡️ Sending POST {url}")
    print(json.dumps(payload, indent=2))

    resp = requests.post(url, headers=headers, json=payload)

    print(f"\n⬅️ Status: {resp.status_code}")
    try:
        data = resp.json()
        print(json.dumps(data, indent=2))
    except ValueError:
        print(resp.text)
        return

    if resp.ok:
        route = requests.post(
            f"{BASE_URL}/api/itinerary/route",
            headers=headers,
            json={"itinerary": data, "dayIndex": 0},
        )
        print(f"\n⬅️ Route status: {route.status_code}")
        print(json.dumps(route.json(), indent=2))

if __name__ == "__main__":
    run_smoke()
