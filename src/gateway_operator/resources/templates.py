"""Rendering of the packaged object templates."""

import jinja2
import yaml

_environment = None


def get_environment():
    global _environment
    if _environment is None:
        _environment = jinja2.Environment(
            loader=jinja2.PackageLoader("gateway_operator", "templates"),
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=jinja2.StrictUndefined,
        )
    return _environment


def render_resource(template_name, **values):
    """Render a template holding exactly one object and parse it into a dict."""
    template = get_environment().get_template(template_name)
    rendered = template.render(**values)
    resources = [resource for resource in yaml.safe_load_all(rendered) if resource]
    if len(resources) != 1:
        raise ValueError(
            f"Template {template_name} rendered {len(resources)} objects, expected 1"
        )
    return resources[0]
