# widget.py
import logging
import re
from datetime import datetime

from jinja2 import Environment
from markupsafe import Markup, escape

from bmi import compute
from options import TIMESTAMP_FORMAT

logger = logging.getLogger(__name__)

DEFAULT_DATE_FORMAT = "%B %d, %Y %H:%M"
DEFAULT_TITLE = "My Weight"

CONFIGURE_PROMPT = Markup("<p>Please configure your measurements in <em>Settings → BMI Widget</em>.</p>")

OUTPUT = """
<div class="bmi-widget">
    <p><strong>Weight:</strong> {{ result.display_weight }}</p>
    <p><strong>BMI:</strong> {{ bmi_text }}
        {% if result.classification %} ({{ result.classification }}){% endif %}
    </p>
    {% if updated %}
    <p><em>Last updated: {{ updated }}</em></p>
    {% endif %}
</div>
<style>
    .bmi-widget { line-height:1.5; }
</style>
"""

_env = Environment(autoescape=True)
_output_template = _env.from_string(OUTPUT)


def format_updated(updated_at, date_format=DEFAULT_DATE_FORMAT):
    try:
        return datetime.strptime(updated_at, TIMESTAMP_FORMAT).strftime(date_format)
    except (TypeError, ValueError):
        logger.debug(f"Unparsable updated_at {updated_at!r}; showing as stored")
        return updated_at


def render_output(config, date_format=DEFAULT_DATE_FORMAT):
    """Markup for one computation, or the configure prompt when measurements are missing."""
    result = compute(config)
    if not result.is_valid:
        return CONFIGURE_PROMPT

    updated = None
    if config.show_updated and result.updated_at:
        updated = format_updated(result.updated_at, date_format)

    return Markup(_output_template.render(result=result, bmi_text=f"{result.bmi:,.1f}", updated=updated))


class BmiWidget:
    id_base = "bmi_widget"
    name = "BMI/Weight Display"
    description = "Shows your weight, BMI, and obesity class."

    default_args = {
        "before_widget": Markup('<section class="widget widget_bmi_widget">'),
        "after_widget": Markup("</section>"),
        "before_title": Markup('<h2 class="widget-title">'),
        "after_title": Markup("</h2>"),
    }

    def __init__(self, date_format=DEFAULT_DATE_FORMAT):
        self.date_format = date_format

    def render(self, config, args=None):
        """Sidebar markup: wrapper, title (custom label or default) and output."""
        a = dict(self.default_args)
        a.update(args or {})
        title = escape(config.custom_label) if config.custom_label else DEFAULT_TITLE
        return Markup("").join([
            Markup(a["before_widget"]),
            Markup(a["before_title"]), title, Markup(a["after_title"]),
            render_output(config, self.date_format),
            Markup(a["after_widget"]),
        ])

    def form(self, instance=None):
        return Markup("<p>Uses values from <strong>Settings → BMI Widget</strong>. No per-widget options.</p>")

    def update(self, new_instance, old_instance):
        # no per-widget options to save
        return old_instance


# -------- Shortcodes --------

_ATTR = re.compile(r"""([\w-]+)\s*=\s*"([^"]*)"|([\w-]+)\s*=\s*'([^']*)'|([\w-]+)\s*=\s*([^\s'"]+)|"([^"]*)"|(\S+)""")


def parse_attrs(text):
    """Shortcode attributes: name="v", name='v', name=v; bare values get positional keys."""
    attrs = {}
    position = 0
    for m in _ATTR.finditer(text or ""):
        if m.group(1):
            attrs[m.group(1).lower()] = m.group(2)
        elif m.group(3):
            attrs[m.group(3).lower()] = m.group(4)
        elif m.group(5):
            attrs[m.group(5).lower()] = m.group(6)
        else:
            bare = m.group(7) if m.group(7) is not None else m.group(8)
            if bare == "/":
                continue
            attrs[position] = bare
            position += 1
    return attrs


class ShortcodeRegistry:
    def __init__(self):
        self._handlers = {}

    def add(self, tag, handler):
        if not re.fullmatch(r"[\w-]+", tag):
            raise ValueError(f"Invalid shortcode tag: {tag!r}")
        self._handlers[tag] = handler

    def _pattern(self):
        tags = "|".join(re.escape(t) for t in sorted(self._handlers, key=len, reverse=True))
        return re.compile(r"(\[?)\[(" + tags + r")(?![\w-])([^\]]*?)/?\](\]?)")

    def do_shortcode(self, content, escape_text=False):
        """Replace registered [tag ...] occurrences in content with their handler output.

        With escape_text, everything outside the tags is HTML-escaped and only
        handler output is kept as markup; use it for untrusted content.
        """
        content = content or ""
        text = escape if escape_text else str
        if not self._handlers or "[" not in content:
            return Markup(text(content)) if escape_text else content

        parts = []
        pos = 0
        for m in self._pattern().finditer(content):
            parts.append(text(content[pos:m.start()]))
            pos = m.end()
            # [[tag]] is an escaped, literal [tag]
            if m.group(1) == "[" and m.group(4) == "]":
                parts.append(text(m.group(0)[1:-1]))
                continue
            handler = self._handlers[m.group(2)]
            out = handler(parse_attrs(m.group(3)))
            parts.extend([text(m.group(1)), str(out), text(m.group(4))])
        parts.append(text(content[pos:]))

        joined = "".join(str(p) for p in parts)
        return Markup(joined) if escape_text else joined
