from __future__ import annotations

from html import escape


def html_page(title: str, body: str) -> str:
    safe_title = escape(title)
    return f"""<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>{safe_title}</title>
  </head>
  <body>
    <h1>{safe_title}</h1>
    {body}
  </body>
</html>"""


def csrf_field(token: str) -> str:
    return f'<input type="hidden" name="csrf_token" value="{escape(token, quote=True)}">'


def credentials_form(action: str, csrf_token: str, submit_label: str) -> str:
    return f"""<form action="{escape(action, quote=True)}" method="post">
      {csrf_field(csrf_token)}
      <label>Email: <input type="email" name="email" required></label><br>
      <label>Password: <input type="password" name="password" required></label><br>
      <button type="submit">{escape(submit_label)}</button>
    </form>"""
