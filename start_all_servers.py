"""
Script to start all RoomChat servers simultaneously
"""
import subprocess
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent

# Define all servers as importable modules
SERVERS = [
    ("TCP Chat Server", "roomchat.tcp_chat.server"),
    ("Upload API", "roomchat.api.main"),
]


def start_servers():
    """Start every server as its own child process and wait on them."""
    processes = []

    print("Starting all RoomChat servers...")
    print("-" * 50)

    for name, module in SERVERS:
        try:
            proc = subprocess.Popen([sys.executable, "-m", module], cwd=str(PROJECT_ROOT))
            processes.append((name, proc))
            print(f"✓ {name}: Started (pid {proc.pid})")
        except OSError as e:
            print(f"❌ {name}: Failed to start - {e}")

    print("-" * 50)
    print("Press Ctrl+C to stop all servers.")

    try:
        for _, proc in processes:
            proc.wait()
    except KeyboardInterrupt:
        for name, proc in processes:
            proc.terminate()
            print(f"Stopped {name}")


if __name__ == "__main__":
    start_servers()
