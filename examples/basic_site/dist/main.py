#!/usr/bin/env isomorphic-html
"""Generator entry chunk for the basic example site."""

PAGES = {
    "/": "Home",
    "/about": "About",
}


async def render(locals, stats):
    layout = window.load_script("/static/chunks/layout.py")
    site_name = locals.get("site_name", "Example")
    return {
        path: layout.render_page(site_name, title, len(stats.assets))
        for path, title in PAGES.items()
    }


exports.default = render
