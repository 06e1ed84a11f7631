"""Live-preview renderer — builds a self-contained HTML page for an iframe.

Stylesheets and scripts referenced by the entry page are inlined, and a mock
extension runtime API backed by ``localStorage`` is injected so popup code
can run outside the browser's extension host.  This is display-only: the
file set itself is never modified.
"""

from __future__ import annotations

import re
from typing import Sequence

from extension_builder.domain.entities import FileLanguage, GeneratedFile, PreviewPlatform

ENTRY_PRIORITY: tuple[str, ...] = ("popup.html", "index.html", "options.html")

_HEAD_CLOSE_RE = re.compile(r"</head>", re.IGNORECASE)

_CHROME_SHIM = """\
<script>
  (function() {
    const storageKey = 'chrome_ext_storage';
    const load = () => JSON.parse(localStorage.getItem(storageKey) || '{}');
    const pick = (data, keys) => {
      const result = {};
      if (typeof keys === 'string') result[keys] = data[keys];
      else if (Array.isArray(keys)) keys.forEach(key => result[key] = data[key]);
      else Object.assign(result, data);
      return result;
    };
    window.chrome = window.chrome || {};
    window.chrome.storage = {
      local: {
        get: function(keys, callback) {
          const result = pick(load(), keys);
          if (callback) callback(result);
          return Promise.resolve(result);
        },
        set: function(items, callback) {
          const data = load();
          Object.assign(data, items);
          localStorage.setItem(storageKey, JSON.stringify(data));
          if (callback) callback();
          return Promise.resolve();
        },
        remove: function(keys, callback) {
          const data = load();
          (Array.isArray(keys) ? keys : [keys]).forEach(key => delete data[key]);
          localStorage.setItem(storageKey, JSON.stringify(data));
          if (callback) callback();
          return Promise.resolve();
        }
      }
    };
    window.chrome.runtime = {
      sendMessage: (msg, cb) => { if (cb) cb({ success: true }); return Promise.resolve(); },
      getURL: (path) => path
    };
    window.chrome.tabs = {
      query: (q, cb) => { if (cb) cb([{ id: 1 }]); return Promise.resolve([{ id: 1 }]); },
      sendMessage: (id, msg, cb) => { if (cb) cb({ success: true }); return Promise.resolve(); }
    };
  })();
</script>"""

_FIREFOX_SHIM = """\
<script>
  (function() {
    const storageKey = 'firefox_ext_storage';
    const load = () => JSON.parse(localStorage.getItem(storageKey) || '{}');
    window.browser = {
      storage: {
        local: {
          get: function(keys) {
            const data = load();
            const result = {};
            if (typeof keys === 'string') result[keys] = data[keys];
            else if (Array.isArray(keys)) keys.forEach(key => result[key] = data[key]);
            else Object.assign(result, data);
            return Promise.resolve(result);
          },
          set: function(items) {
            const data = load();
            Object.assign(data, items);
            localStorage.setItem(storageKey, JSON.stringify(data));
            return Promise.resolve();
          },
          remove: function(keys) {
            const data = load();
            (Array.isArray(keys) ? keys : [keys]).forEach(key => delete data[key]);
            localStorage.setItem(storageKey, JSON.stringify(data));
            return Promise.resolve();
          }
        }
      },
      runtime: {
        sendMessage: (msg) => Promise.resolve({ success: true }),
        getURL: (path) => path
      },
      tabs: {
        query: (q) => Promise.resolve([{ id: 1 }]),
        sendMessage: (id, msg) => Promise.resolve({ success: true })
      }
    };
    window.chrome = window.browser;
  })();
</script>"""

_SHIMS: dict[PreviewPlatform, str] = {
    PreviewPlatform.CHROME: _CHROME_SHIM,
    PreviewPlatform.FIREFOX: _FIREFOX_SHIM,
}

_BASE_STYLES = (
    "<style>"
    "html,body{margin:0;padding:0;width:100%;height:100%;overflow-x:hidden;}"
    "*{box-sizing:border-box;}"
    "</style>"
)


def find_entry_file(files: Sequence[GeneratedFile]) -> GeneratedFile | None:
    """Pick the HTML page to preview: popup, index, options, then any HTML."""
    by_name = {f.name: f for f in files}
    for name in ENTRY_PRIORITY:
        if name in by_name:
            return by_name[name]
    return next((f for f in files if f.language is FileLanguage.HTML), None)


def _inject_into_head(html: str, snippet: str) -> str:
    if _HEAD_CLOSE_RE.search(html):
        return _HEAD_CLOSE_RE.sub(lambda m: f"{snippet}{m.group(0)}", html, count=1)
    return f"{snippet}\n{html}"


def _link_re(name: str) -> re.Pattern[str]:
    return re.compile(rf"""<link[^>]*href=["']{re.escape(name)}["'][^>]*>""", re.IGNORECASE)


def _script_re(name: str) -> re.Pattern[str]:
    return re.compile(
        rf"""<script[^>]*src=["']{re.escape(name)}["'][^>]*>\s*</script>""",
        re.IGNORECASE,
    )


def render_preview(
    files: Sequence[GeneratedFile],
    platform: PreviewPlatform = PreviewPlatform.CHROME,
) -> str | None:
    """Return preview HTML for *files*, or ``None`` when there is no HTML page."""
    entry = find_entry_file(files)
    if entry is None:
        return None

    html = entry.content
    css_files = [f for f in files if f.language is FileLanguage.CSS]
    js_files = [f for f in files if f.language is FileLanguage.JAVASCRIPT]

    unlinked: list[GeneratedFile] = []
    for css in css_files:
        pattern = _link_re(css.name)
        if pattern.search(html):
            html = pattern.sub(lambda _m, c=css.content: f"<style>{c}</style>", html)
        else:
            unlinked.append(css)

    if unlinked:
        html = _inject_into_head(
            html, "\n".join(f"<style>{f.content}</style>" for f in unlinked)
        )

    html = _inject_into_head(html, _SHIMS[platform])

    for js in js_files:
        html = _script_re(js.name).sub(
            lambda _m, c=js.content: f"<script>{c}</script>", html
        )

    return _inject_into_head(html, _BASE_STYLES)
