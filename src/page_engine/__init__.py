# Page Engine: discovery page generation and publishing
"""
Discovery page generation and publishing modules:
- url_builder: intent-aware file paths and slugs
- freshness: time-sensitivity tags and expiry
- content_writer: LLM title/description synthesis with deterministic fallback
- page_codec: compact storage form of page data
- template_engine: Jinja2 intent renderers, schema.org and voice fragments
- generator: "generate pages for update X"
- publisher: flag flip, static upload, CDN purge, sitemap/robots
"""
