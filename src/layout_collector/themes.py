DEFAULT_THEME = "dark"

_LAYOUT_CSS = """
#filters { height: auto; padding: 0 1; }
#filter-row { height: auto; }
#filter-row > Vertical { width: 1fr; height: auto; }
.field-label { padding: 0 1; }
#search { margin: 0 0 1 0; }
#status { height: auto; padding: 0 1; }
#results { height: 1fr; padding: 0 1; }
.layout-card { height: auto; margin: 0 0 1 0; padding: 0 1; }
.card-title { text-style: bold; }
.card-badges { height: auto; }
.card-actions { height: auto; }
.card-actions Button { min-width: 10; margin-right: 1; }
#load-more { width: 100%; }
"""

THEMES = {
    "dark": _LAYOUT_CSS + """
    Screen { background: #111; color: #ddd; }
    Header, Footer { background: #1e1e1e; color: #bbb; }
    #status { background: #191919; color: #7ef9ff; }
    #status.error { color: #ff6b6b; }
    .layout-card { border: round #1fbfd1; }
    .badge-purpose { color: #7aa2ff; }
    .badge-layout { color: #7ee787; }
    """,
    "light": _LAYOUT_CSS + """
    Screen { background: #f3f4f8; color: #222; }
    Header, Footer { background: #fff; color: #333; }
    #status { background: #fff; color: #223; }
    #status.error { color: #c62828; }
    .layout-card { border: round #6666aa; background: #fff; }
    .badge-purpose { color: #1d4ed8; }
    .badge-layout { color: #15803d; }
    """,
    "cyberpunk": _LAYOUT_CSS + """
    Screen { background: #090b12; color: #d7e6ff; }
    Header, Footer { background: #160a24; color: #b388ff; }
    #status { background: #120820; color: #64ffff; }
    #status.error { color: #ff4d8d; }
    .layout-card { border: round #29f0ff; background: #0f1320; }
    .badge-purpose { color: #b388ff; }
    .badge-layout { color: #64ffff; }
    """,
}
