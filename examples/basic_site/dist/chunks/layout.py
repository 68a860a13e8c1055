from html import escape


def render_page(site_name, title, asset_count):
    return (
        "<!DOCTYPE html><html><head>"
        f"<title>{escape(title)} | {escape(site_name)}</title>"
        "</head><body>"
        f"<h1>{escape(title)}</h1>"
        f"<p>Rendered at build time from {asset_count} assets.</p>"
        "</body></html>"
    )


exports.render_page = render_page
