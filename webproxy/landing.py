from html import escape

from webproxy.proxy.config import ProxyConfig
from webproxy.proxy.models import Addressing

LANDING_PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>Web Proxy</title>
  <style>
    body {{ font-family: system-ui, sans-serif; max-width: 40rem; margin: 4rem auto; padding: 0 1rem; }}
    form {{ display: flex; gap: .5rem; }}
    input[type=text] {{ flex: 1; padding: .5rem; font-size: 1rem; }}
    button {{ padding: .5rem 1rem; font-size: 1rem; }}
  </style>
</head>
<body>
  <h1>Web Proxy</h1>
  <p>Enter the address of the page to open through the proxy.</p>
  <form id="proxy-form" action="{action}" method="get">
    <input type="text" name="{param}" placeholder="example.com" autofocus required>
    <button type="submit">Go</button>
  </form>
  {script}
</body>
</html>
"""

# Path addressing has no query parameter to submit, so the form navigates itself
PATH_MODE_SCRIPT = """<script>
    document.getElementById("proxy-form").addEventListener("submit", function (e) {{
      e.preventDefault();
      var target = this.elements["{param}"].value.trim();
      if (target) {{ window.location.href = "{prefix}/" + encodeURIComponent(target); }}
    }});
  </script>"""


def render_landing_page(config: ProxyConfig) -> str:
    if config.addressing == Addressing.QUERY:
        return LANDING_PAGE_TEMPLATE.format(
            action=escape(config.public_url + config.query_route),
            param=escape(config.target_param),
            script="",
        )
    return LANDING_PAGE_TEMPLATE.format(
        action=escape(config.public_url + config.path_prefix + "/"),
        param="target",
        script=PATH_MODE_SCRIPT.format(
            param="target", prefix=config.public_url + config.path_prefix
        ),
    )
