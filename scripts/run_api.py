import subprocess
import sys
import os
from pathlib import Path

def main():
    project_root = Path(__file__).parent.parent
    os.chdir(project_root)

    # Ensure src is in python path
    env = os.environ.copy()
    src_path = str(project_root / "src")
    if "PYTHONPATH" in env:
        env["PYTHONPATH"] = f"{src_path}{os.pathsep}{env['PYTHONPATH']}"
    else:
        env["PYTHONPATH"] = src_path

    host = env.get("API_HOST", "0.0.0.0")
    port = env.get("API_PORT", "8000")

    print(f"Starting Segment Discounts API (FastAPI) on {host}:{port}...")
    try:
        subprocess.run([
            sys.executable, "-m", "uvicorn",
            "segment_discounts.api.main:app",
            "--host", host,
            "--port", port,
            "--reload"
        ], env=env)
    except KeyboardInterrupt:
        print("\nAPI stopped.")

if __name__ == "__main__":
    main()
