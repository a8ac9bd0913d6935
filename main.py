# main.py
import logging
import os

from flask import Flask, jsonify, request, render_template_string
from markupsafe import Markup

from options import (
    JsonFileOptionStore,
    OptionStoreError,
    load_config,
    save_config,
)
from widget import DEFAULT_DATE_FORMAT, BmiWidget, ShortcodeRegistry, render_output

logger = logging.getLogger(__name__)

# -------- Settings form fields: (key, label, type, choices) --------
FIELDS = [
    ("weight", "Weight", "number", None),
    ("weight_unit", "Weight Unit", "select", [("kg", "kg"), ("lb", "lb")]),
    ("height", "Height", "number", None),
    ("height_unit", "Height Unit", "select", [("cm", "cm"), ("in", "in")]),
    ("show_updated", "Show “Last Updated”", "checkbox", None),
    ("custom_label", "Custom Label (optional)", "text", None),
]

SAMPLE_CONTENT = "<p>Here is where I am today:</p>\n[bmi_widget]"

BASE = """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>{{ title }}</title>
  <style>
    :root {
      --bg: #0b0f14;
      --card: #121822;
      --muted: #9fb0c3;
      --text: #e9eef5;
      --danger: #ff6b6b;
      --ok: #2ecc71;
    }
    * { box-sizing: border-box; }
    body {
      margin: 0;
      font-family: ui-sans-serif, system-ui, -apple-system, Segoe UI, Roboto, Arial;
      background: radial-gradient(1200px 800px at 80% -20%, #1a2332 0%, #0b0f14 60%);
      color: var(--text);
    }
    a { color: #5ac8fa; }
    .wrap { max-width: 960px; margin: 40px auto; padding: 16px; }
    .card {
      background: linear-gradient(180deg, #121822, #0e141d);
      border: 1px solid #1f2a3a;
      border-radius: 16px;
      padding: 24px;
    }
    .grid { display: grid; grid-template-columns: repeat(12, 1fr); gap: 16px; }
    .col-8 { grid-column: span 8; }
    .col-4 { grid-column: span 4; }
    .field { padding: 12px; border-radius: 12px; background: #0b111a; border: 1px solid #1b2636; margin-bottom: 12px; }
    .label { font-size: 12px; color: var(--muted); margin-bottom: 6px; display: block; }
    input[type="number"], input[type="text"], select {
      width: 100%; font-size: 16px; padding: 10px 12px; border-radius: 8px;
      border: 1px solid #1e2a3b; background: #0f1622; color: var(--text);
    }
    button {
      padding: 12px 16px; border-radius: 10px; border: 1px solid #33527a;
      background: linear-gradient(180deg, #1c3454, #142441); color: var(--text);
      cursor: pointer; font-weight: 600;
    }
    .result { margin: 0 0 16px; padding: 16px; border-radius: 12px; background: #0e1520; }
    .err { color: var(--danger); }
    .ok { color: var(--ok); }
    @media (max-width: 900px){
      .col-8, .col-4 { grid-column: span 12; }
    }
  </style>
</head>
<body>
  <div class="wrap">
    {% block body %}{% endblock %}
  </div>
</body>
</html>
"""

HOME = BASE.replace("{% block body %}{% endblock %}", """
    <div class="grid">
      <main class="col-8 card">
        <h1>{{ title }}</h1>
        {{ content }}
        <p class="label"><a href="{{ url_for('settings') }}">Settings → BMI Widget</a></p>
      </main>
      <aside class="col-4 card">
        {{ sidebar }}
      </aside>
    </div>
""")

SETTINGS = BASE.replace("{% block body %}{% endblock %}", """
    <div class="card">
      <h1>BMI Widget</h1>
      <p class="label">Enter your measurements. The plugin will compute BMI and obesity class.</p>

      {% if error %}
        <div class="result err"><strong>Error:</strong> {{ error }}</div>
      {% endif %}
      {% if saved %}
        <div class="result ok">Settings saved.</div>
      {% endif %}

      <form method="POST" action="{{ url_for('settings') }}">
        {% for key, label, type, choices in fields %}
          <div class="field">
            <label class="label" for="{{ key }}">{{ label }}</label>
            {% set val = values.get(key, '') %}
            {% if type == 'number' %}
              <input type="number" step="0.01" min="0" id="{{ key }}" name="{{ key }}" value="{{ val }}" inputmode="decimal">
            {% elif type == 'text' %}
              <input type="text" id="{{ key }}" name="{{ key }}" value="{{ val }}">
            {% elif type == 'select' %}
              <select id="{{ key }}" name="{{ key }}">
                {% for value, text in choices %}
                  <option value="{{ value }}"{% if val == value %} selected{% endif %}>{{ text }}</option>
                {% endfor %}
              </select>
            {% elif type == 'checkbox' %}
              <label><input type="checkbox" id="{{ key }}" name="{{ key }}" value="1"{% if val %} checked{% endif %}> Enable</label>
            {% endif %}
          </div>
        {% endfor %}
        <button type="submit">Save Changes</button>
      </form>
      <p class="label"><a href="{{ url_for('index') }}">Back to site</a></p>
    </div>
""")


def load_settings_from_env(app):
    app.config.setdefault("BMI_OPTIONS_PATH", os.environ.get("BMI_OPTIONS_PATH", "./bmi_options.json"))
    app.config.setdefault("BMI_DATE_FORMAT", os.environ.get("BMI_DATE_FORMAT", DEFAULT_DATE_FORMAT))
    app.config.setdefault("BMI_SITE_TITLE", os.environ.get("BMI_SITE_TITLE", "My Site"))
    app.config.setdefault("LOG_LEVEL", os.environ.get("LOG_LEVEL", "INFO"))


def configure_logging(level):
    # basicConfig only adds a handler when the root logger has none (e.g. under a WSGI server)
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(str(level).upper())


def create_app(store=None, clock=None, config=None):
    """Build the site. `store` holds the options record, `clock` stamps saves."""
    app = Flask(__name__)
    if config:
        app.config.update(config)
    load_settings_from_env(app)
    configure_logging(app.config["LOG_LEVEL"])

    if store is None:
        store = JsonFileOptionStore(app.config["BMI_OPTIONS_PATH"])

    widget = BmiWidget(date_format=app.config["BMI_DATE_FORMAT"])
    shortcodes = ShortcodeRegistry()

    def bmi_shortcode(attrs):
        # [bmi_widget] takes no attributes
        return render_output(load_config(store), app.config["BMI_DATE_FORMAT"])

    shortcodes.add("bmi_widget", bmi_shortcode)

    @app.route("/", methods=["GET"])
    def index():
        content = Markup(shortcodes.do_shortcode(SAMPLE_CONTENT))
        return render_template_string(
            HOME,
            title=app.config["BMI_SITE_TITLE"],
            content=content,
            sidebar=widget.render(load_config(store)),
        )

    @app.route("/settings", methods=["GET", "POST"])
    def settings():
        if request.method == "GET":
            return render_template_string(SETTINGS, title="BMI Widget", fields=FIELDS,
                                          values=load_config(store).to_dict(), saved=False, error=None)

        try:
            config = save_config(store, request.form, now=clock)
        except OptionStoreError as e:
            logger.error(f"Could not save BMI settings: {e}")
            return render_template_string(SETTINGS, title="BMI Widget", fields=FIELDS,
                                          values=request.form.to_dict(), saved=False,
                                          error="Settings could not be saved."), 500

        return render_template_string(SETTINGS, title="BMI Widget", fields=FIELDS,
                                      values=config.to_dict(), saved=True, error=None)

    @app.route("/widget", methods=["GET"])
    def sidebar_widget():
        return widget.render(load_config(store))

    @app.route("/shortcode", methods=["POST"])
    def shortcode():
        return shortcodes.do_shortcode(request.form.get("content", ""), escape_text=True)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    return app


app = create_app()

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port)
