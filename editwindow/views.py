from flask import abort, make_response, render_template

DENIED_TEMPLATE = 'general/edit_timeout_expired.html'


def render_edit_timeout(message: str):
    """Render the edit-timeout page and end the request with 403."""
    response = make_response(render_template(DENIED_TEMPLATE, message=message), 403)
    abort(response)
