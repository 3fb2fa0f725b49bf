import time
import subprocess
import httpx
import sys
import os
import signal

BASE_URL = "http://127.0.0.1:8000"
API_PREFIX = "/v1"
APP = "transfer_backend.app.main:app"
DRIVER_NAME = "Persistence Check Driver"

def wait_for_server(retries=10, delay=2):
    url = f"{BASE_URL}/health"
    print(f"Waiting for server at {url}...")
    for i in range(retries):
        try:
            resp = httpx.get(url)
            if resp.status_code == 200:
                print("✅ Server is up!")
                return True
        except httpx.ConnectError:
            pass
        time.sleep(delay)
    print("❌ Server failed to start.")
    return False

def start_server(env=None):
    return subprocess.Popen(
        [sys.executable, "-m", "uvicorn", APP, "--host", "127.0.0.1", "--port", "8000"],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env=env
    )

def run_verification():
    # Token of a seeded admin profile (printed by transfer_backend/seed_data.py)
    token = os.getenv("ADMIN_TOKEN")
    if not token:
        print("❌ Set ADMIN_TOKEN (run transfer_backend/seed_data.py first)")
        sys.exit(1)
    headers = {"Authorization": f"Bearer {token}"}

    # 1. Start Server (First Run)
    print("\n--- [Step 1] Starting Server (Initial) ---")
    proc = start_server(env={**os.environ, "DB_ECHO": "True"})  # Enable echo to see SQL

    try:
        if not wait_for_server():
            server_logs = proc.communicate(timeout=2)
            print("Server Stdout:", server_logs[0].decode())
            print("Server Stderr:", server_logs[1].decode())
            raise Exception("Server start failed")

        # 2. Register Driver
        print("\n--- [Step 2] Registering Driver (Persistence Test) ---")
        resp = httpx.post(
            f"{BASE_URL}{API_PREFIX}/admin/drivers",
            json={"full_name": DRIVER_NAME, "phone": "+37120009999"},
            headers=headers
        )
        if resp.status_code == 201:
            print("✅ Driver Registered Successfully")
            print(resp.json())
        else:
            print(f"❌ Registration Failed: {resp.status_code} {resp.text}")
            raise Exception("Driver registration failed")

    finally:
        print("\n--- [Step 3] Stopping Server ---")
        proc.send_signal(signal.SIGTERM)
        proc.wait()

    time.sleep(2) # Wait for port release

    # 3. Restart Server
    print("\n--- [Step 4] Restarting Server (Verification) ---")
    proc2 = start_server()

    try:
        if not wait_for_server():
            raise Exception("Server restart failed")

        # 4. List drivers
        print("\n--- [Step 5] Listing Drivers (Post-Restart) ---")
        resp = httpx.get(f"{BASE_URL}{API_PREFIX}/admin/drivers", headers=headers)

        if resp.status_code != 200:
            print(f"❌ Listing Failed: {resp.status_code} {resp.text}")
            raise Exception("Driver listing failed after restart")

        names = [driver["full_name"] for driver in resp.json()]
        if DRIVER_NAME in names:
            print("✅ Driver Persisted!")
        else:
            print(f"❌ Driver missing after restart (Persistence Issue?): {names}")
            raise Exception("Driver not persisted")

    finally:
        print("\n--- [Step 6] Stopping Server ---")
        proc2.send_signal(signal.SIGTERM)
        proc2.wait()

if __name__ == "__main__":
    run_verification()
