import html
import json

# --- HTML Templates ---
_HEAD = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <style>
        :root {{
            --primary-bg: #1f2023;
            --secondary-bg: #282a2d;
            --accent-color: #0078d4;
            --text-color: #f0f0f0;
            --border-radius-md: 8px;
        }}
        body {{ font-family: 'Segoe UI', Arial, sans-serif; background: var(--primary-bg); color: var(--text-color); margin: 0; }}
        .panel {{ background: var(--secondary-bg); border-radius: var(--border-radius-md); padding: 25px 35px; }}
        button {{ background: var(--accent-color); color: white; border: none; padding: 10px 20px; cursor: pointer; }}
        #video-grid {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(280px, 1fr)); gap: 10px; }}
        #video-grid.single-user {{ grid-template-columns: 1fr; }}
        .video-wrapper {{ position: relative; }}
        .video-name {{ position: absolute; bottom: 8px; left: 8px; }}
        .message.own {{ text-align: right; }}
        .message.system {{ font-style: italic; opacity: 0.8; }}
    </style>
</head>
"""

INDEX_TEMPLATE = _HEAD.format(title="meshmeet") + """<body>
    <div class="panel">
        <h2>Start a call</h2>
        <button id="create-room">Create Room</button>
        <p id="room-link"></p>
    </div>
    <script>
        document.getElementById("create-room").addEventListener("click", async () => {
            const res = await fetch("/create-room", { method: "POST" });
            const data = await res.json();
            window.location.href = "/" + data.roomId;
        });
    </script>
</body>
</html>
"""

ROOM_TEMPLATE = _HEAD.format(title="meshmeet - {room_label}") + """<body>
    <div id="video-grid"></div>
    <div class="panel">
        <button id="toggleVideo">Video On</button>
        <button id="toggleAudio">Audio On</button>
    </div>
    <div class="panel" id="chat">
        <div id="chatMessages"></div>
        <input type="text" id="messageInput" placeholder="Type a message...">
        <button id="sendBtn">Send</button>
    </div>
    <script>const ROOM_ID = {room_id_json};</script>
</body>
</html>
"""


def render_index() -> str:
    return INDEX_TEMPLATE


def render_room(room_id: str) -> str:
    # "</" must not appear literally inside the inline script
    room_id_json = json.dumps(room_id).replace("</", "<\\/")
    return ROOM_TEMPLATE.replace("{room_label}", html.escape(room_id)).replace("{room_id_json}", room_id_json)
