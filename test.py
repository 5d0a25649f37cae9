"""
MOVA AI TERMINAL CLIENT
=======================

PURPOSE:
Command-line interface for talking to the mova ai backend without a browser
UI. It can chat, analyze an attached image, edit it, or generate a new one.
Every mode shares the same session ID, so the backend keeps one ordered
conversation (and one active image) for the whole run.

USAGE:
    python test.py

    Make sure the server is running first: python run.py

COMMANDS:
    1 - Chat mode (text only)
    2 - Analyze mode (describe the attached image)
    3 - Edit mode (edit the attached image, or the last edited/generated one)
    4 - Generate mode (create an image from your message)
    /image <path> - Attach an image for the next analyze/edit message
    /save <path>  - Save the last image returned by the assistant
    /history      - View chat history for current session
    /clear        - Start a new session
    /quit or /exit - Exit
"""

import base64
import mimetypes
from pathlib import Path

import requests

try:
    from config import ASSISTANT_NAME, PORT
except ImportError:
    ASSISTANT_NAME = "mova ai"
    PORT = 8000


# -----------------------------------------------------------------------------
# CONFIGURATION
# -----------------------------------------------------------------------------
BASE_URL = f"http://localhost:{PORT}"
ENDPOINTS = {
    "chat": "/chat",
    "analyze": "/chat/analyze",
    "edit": "/chat/edit",
    "generate": "/chat/generate",
}
# Image backoff can take a while (up to 30s of retries for generation), so be generous.
TIMEOUTS = {"chat": 60, "analyze": 60, "edit": 90, "generate": 150}

SESSION_ID = None
CURRENT_MODE = None
ATTACHED_IMAGE = None  # (base64 string, media type)
LAST_IMAGE = None      # data URL of the last image the assistant returned


# -----------------------------------------------------------------------------
# UI HELPERS
# -----------------------------------------------------------------------------

def print_header():
    print("\n" + "=" * 60)
    print(f"{ASSISTANT_NAME} - terminal client")
    print("=" * 60)
    print("\nModes:")
    print("  1 = Chat      2 = Analyze image")
    print("  3 = Edit image 4 = Generate image")
    print("\nCommands:")
    print("  /image <path> - Attach an image")
    print("  /save <path>  - Save the last returned image")
    print("  /history - See chat history")
    print("  /clear - Start new session")
    print("  /quit - Exit")
    print("=" * 60 + "\n")


def get_user_input():
    try:
        return input("\nYou: ").strip()
    except (KeyboardInterrupt, EOFError):
        return None


def load_image(path):
    """Read an image file and return (base64 string, media type)."""
    file_path = Path(path).expanduser()
    media_type = mimetypes.guess_type(file_path.name)[0] or "image/png"
    data = file_path.read_bytes()
    return base64.b64encode(data).decode("ascii"), media_type


def save_image(data_url, path):
    """Write a data URL image to disk."""
    _, _, payload = data_url.partition(",")
    Path(path).expanduser().write_bytes(base64.b64decode(payload))


# -----------------------------------------------------------------------------
# API CALLS
# -----------------------------------------------------------------------------

def send_message(message, mode):
    """
    Send a message to the endpoint for the current mode and return the text to print.

    Error turns come back with a non-200 status but the same body shape, so the
    classified kind is shown alongside the message.
    """
    global SESSION_ID, ATTACHED_IMAGE, LAST_IMAGE

    payload = {"message": message, "session_id": SESSION_ID}
    if mode in ("analyze", "edit") and ATTACHED_IMAGE:
        payload["image"], payload["media_type"] = ATTACHED_IMAGE

    try:
        response = requests.post(
            f"{BASE_URL}{ENDPOINTS[mode]}",
            json=payload,
            timeout=TIMEOUTS[mode],
        )
    except requests.exceptions.ConnectionError:
        return "Cannot connect to backend. Start it with: python run.py"
    except requests.exceptions.Timeout:
        return "Request timed out. Try again in a moment."

    try:
        data = response.json()
    except ValueError:
        return f"Error: {response.status_code} - {response.text}"

    turn = data.get("turn")
    if not turn:
        # HTTPException bodies: {"detail": "..."}
        detail = data.get("detail")
        return f"Error: {detail if isinstance(detail, str) else response.status_code}"

    SESSION_ID = data.get("session_id", SESSION_ID)
    if turn.get("is_error"):
        return f"[{turn.get('error_kind')}] {turn.get('text')}"

    # The attachment has been sent; edits keep working on the server's active image.
    ATTACHED_IMAGE = None
    text = turn.get("text", "")
    if turn.get("image"):
        LAST_IMAGE = turn["image"]
        text += "\n(image returned - use /save <path> to keep it)"
    return text


def get_chat_history():
    if not SESSION_ID:
        return "No active session"

    try:
        response = requests.get(f"{BASE_URL}/chat/history/{SESSION_ID}", timeout=10)
    except requests.exceptions.RequestException as e:
        return f"Error retrieving history: {e}"
    if response.status_code != 200:
        return "Could not retrieve history"

    messages = response.json().get("messages", [])
    if not messages:
        return "No messages in this session"

    output = f"\nChat History ({len(messages)} messages):\n"
    output += "-" * 60 + "\n"
    for i, msg in enumerate(messages, 1):
        role = "You" if msg.get("role") == "user" else ASSISTANT_NAME
        marker = " [image]" if msg.get("image") else ""
        error = f" [{msg.get('error_kind')}]" if msg.get("is_error") else ""
        output += f"{i}. {role}{error}: {msg.get('text', '')}{marker}\n"
    output += "-" * 60 + "\n"
    return output


# -----------------------------------------------------------------------------
# MAIN LOOP
# -----------------------------------------------------------------------------

def main():
    global SESSION_ID, CURRENT_MODE, ATTACHED_IMAGE, LAST_IMAGE

    print_header()
    print("Select mode first (1=Chat, 2=Analyze, 3=Edit, 4=Generate):\n")

    modes = {"1": "chat", "2": "analyze", "3": "edit", "4": "generate"}

    while True:
        user_input = get_user_input()
        if user_input is None or user_input in ("/quit", "/exit"):
            print("\nGoodbye!")
            break

        if user_input in modes:
            CURRENT_MODE = modes[user_input]
            print(f"Switched to {CURRENT_MODE.upper()} mode\n")
            continue

        if user_input.startswith("/image"):
            path = user_input[len("/image"):].strip()
            try:
                ATTACHED_IMAGE = load_image(path)
                print(f"Attached {path} ({ATTACHED_IMAGE[1]})")
            except OSError as e:
                print(f"Could not read image: {e}")
            continue

        if user_input.startswith("/save"):
            path = user_input[len("/save"):].strip() or "mova-ai-image.png"
            if not LAST_IMAGE:
                print("No image to save yet")
                continue
            try:
                save_image(LAST_IMAGE, path)
                print(f"Saved to {path}")
            except OSError as e:
                print(f"Could not save image: {e}")
            continue

        if user_input == "/history":
            print(get_chat_history())
            continue

        if user_input == "/clear":
            SESSION_ID = CURRENT_MODE = ATTACHED_IMAGE = LAST_IMAGE = None
            print("\nSession cleared. Select a mode again.")
            continue

        if user_input.startswith("/"):
            print(f"Unknown command: {user_input}")
            continue

        if not CURRENT_MODE:
            print("Please select a mode first (1-4)")
            continue
        if CURRENT_MODE == "analyze" and not ATTACHED_IMAGE:
            print("Attach an image first: /image <path>")
            continue
        if CURRENT_MODE in ("chat", "generate") and not user_input:
            continue

        print(f"{ASSISTANT_NAME} ({CURRENT_MODE}): ", end="", flush=True)
        print(send_message(user_input, CURRENT_MODE))


# Run the interactive loop when this file is executed (python test.py).
if __name__ == "__main__":
    main()
