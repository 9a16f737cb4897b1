from __future__ import annotations

from flask import Blueprint, Response


bp = Blueprint("chat_ui", __name__)


@bp.route("/chat/ui", methods=["GET"])
def chat_ui() -> Response:
    html = _build_html_page()
    return Response(html, mimetype="text/html; charset=utf-8")


def _build_html_page() -> str:
    return """
<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>Live Chat</title>
    <style>
      :root { color-scheme: light dark; --primary: #1976d2; --muted: #8882; }
      * { box-sizing: border-box; }
      body { margin: 0; font-family: system-ui, -apple-system, "Segoe UI", Roboto, sans-serif; }
      .corner { position: fixed; bottom: 16px; z-index: 50; }
      .bottom-right { right: 16px; }
      .bottom-left { left: 16px; }
      .launcher { width: 56px; height: 56px; border-radius: 50%; border: 0; background: var(--primary); color: #fff; font-size: 22px; position: relative; }
      .badge { position: absolute; top: -4px; right: -4px; background: #e53935; color: #fff; border-radius: 10px; font-size: 11px; padding: 2px 6px; }
      .pill { height: 48px; border-radius: 24px; border: 0; padding: 0 18px; background: var(--primary); color: #fff; }
      .window { width: 360px; height: 500px; display: flex; flex-direction: column; border-radius: 12px; box-shadow: 0 8px 24px #0004; background: Canvas; }
      header { display: flex; justify-content: space-between; align-items: center; padding: 10px 12px; background: var(--primary); color: #fff; border-radius: 12px 12px 0 0; }
      header small { display: block; opacity: .8; }
      header button { background: none; border: 0; color: #fff; cursor: pointer; }
      .messages { flex: 1; overflow-y: auto; padding: 12px; display: flex; flex-direction: column; gap: 8px; }
      .bubble { max-width: 80%; padding: 8px 10px; border-radius: 10px; background: var(--muted); white-space: pre-wrap; }
      .end { align-self: flex-end; background: var(--primary); color: #fff; }
      .agent { background: #bbdefb; color: #0d47a1; }
      .author { font-size: 11px; font-weight: 600; }
      .time { font-size: 10px; opacity: .6; }
      .notice { font-size: 11px; color: #e53935; }
      .actions button { margin: 4px 4px 0 0; font-size: 12px; border-radius: 6px; border: 1px solid var(--primary); background: none; cursor: pointer; }
      form { display: flex; gap: 6px; padding: 10px; border-top: 1px solid var(--muted); }
      form input { flex: 1; padding: 8px; }
    </style>
  </head>
  <body>
    <div id="root"></div>
    <script>
      const api = "/rs/chat";
      let sessionId = sessionStorage.getItem("live_chat_session");
      let inputValue = "";
      let lastScroll = null;

      async function post(path, body) {
        const res = await fetch(`${api}/${sessionId}/${path}`, {
          method: "POST", headers: {"Content-Type": "application/json"}, body: JSON.stringify(body || {}),
        });
        if (res.ok) draw(await res.json());
      }

      async function boot() {
        const res = await fetch(`${api}/session`, {
          method: "POST", headers: {"Content-Type": "application/json"},
          body: JSON.stringify({session_id: sessionId, path: location.pathname}),
        });
        const data = await res.json();
        sessionId = data.session_id;
        sessionStorage.setItem("live_chat_session", sessionId);
        draw(data);
        setInterval(poll, 1000);
      }

      async function poll() {
        const res = await fetch(`${api}/${sessionId}?input=${encodeURIComponent(inputValue)}`);
        if (res.ok) draw(await res.json());
      }

      function esc(s) { const d = document.createElement("div"); d.textContent = s || ""; return d.innerHTML; }

      function draw(state) {
        const view = state.view, root = document.getElementById("root");
        if (view.kind === "launcher") {
          const l = view.launcher;
          root.innerHTML = `<div class="corner ${l.position}"><button class="launcher" aria-label="${esc(l.aria_label)}" onclick="post('open')">&#128172;${l.badge ? `<span class="badge">${l.badge}</span>` : ""}</button></div>`;
          return;
        }
        if (view.kind === "minimized") {
          const m = view.minimized;
          root.innerHTML = `<div class="corner ${m.position}"><button class="pill" onclick="post('maximize')">${esc(m.label)}</button></div>`;
          return;
        }
        const w = view.window;
        const bubbles = w.bubbles.map(b => {
          if (b.is_typing) return `<div class="bubble" id="${b.message_id}">&hellip;</div>`;
          const cls = b.align === "end" ? "bubble end" : (b.role === "agent" ? "bubble agent" : "bubble");
          const actions = (b.actions || []).map(a => `<button onclick="post('quick-action', {action: '${a.action}'})">${esc(a.label)}</button>`).join("");
          return `<div class="${cls}" id="${b.message_id}">${b.author ? `<div class="author">${esc(b.author)}</div>` : ""}${esc(b.content)}<div class="time">${b.time_label}</div>${b.notice ? `<div class="notice">${esc(b.notice)}</div>` : ""}${actions ? `<div class="actions">${actions}</div>` : ""}</div>`;
        }).join("");
        root.innerHTML = `<div class="corner ${w.position}"><div class="window" role="dialog" aria-label="${w.aria_label}">
          <header><div><strong>${esc(w.header.title)}</strong><small>${esc(w.header.subtitle)}</small></div>
          <div><button aria-label="Minimize chat" onclick="post('minimize')">&#8211;</button><button aria-label="Close chat" onclick="post('close')">&#10005;</button></div></header>
          <div class="messages">${bubbles}</div>
          <form id="f"><input id="i" aria-label="Chat message" placeholder="${w.input_placeholder}" value="${esc(inputValue)}" /><button id="s" ${w.send_disabled ? "disabled" : ""}>Send</button></form>
        </div></div>`;
        const input = document.getElementById("i");
        input.oninput = e => { inputValue = e.target.value; document.getElementById("s").disabled = !inputValue.trim(); };
        document.getElementById("f").onsubmit = e => { e.preventDefault(); const m = inputValue; inputValue = ""; if (m.trim()) post("message", {message: m}); };
        input.focus();
        if (w.scroll_to && w.scroll_to !== lastScroll) {
          document.getElementById(w.scroll_to).scrollIntoView({behavior: "smooth"});
          lastScroll = w.scroll_to;
        }
      }

      boot();
    </script>
  </body>
</html>
"""
