import datetime
import xml.etree.ElementTree as ET
from typing import Iterable, Optional

from inkpages.schemas.blog import Post
from inkpages.settings import Settings, settings
from inkpages.utils import ms_to_iso, strip_html

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
STATIC_PAGES = (
    ("", "daily", 1.0),
    ("/about", "monthly", 0.8),
    ("/archive", "weekly", 0.7),
)


def _description(post: Post) -> str:
    return post.excerpt or strip_html(post.content[:160])


def post_url(post: Post, site: Settings = settings) -> str:
    return f"{site.BASE_BLOG_URL.rstrip('/')}/posts/{post.id}"


def build_post_metadata(post: Post, site: Settings = settings) -> dict:
    url = post_url(post, site)
    metadata = {
        "title": f"{post.title} | {site.SITE_NAME}",
        "description": _description(post),
        "keywords": post.tags,
        "canonical": url,
        "openGraph": {
            "type": "article",
            "title": post.title,
            "description": _description(post),
            "url": url,
            "siteName": site.SITE_NAME,
            "publishedTime": ms_to_iso(post.publishedAt),
            "modifiedTime": ms_to_iso(post.updatedAt or post.publishedAt),
            "tags": post.tags,
        },
    }
    if post.coverImage and not post.coverImage.startswith("data:"):
        metadata["openGraph"]["images"] = [{"url": post.coverImage, "alt": post.title}]
    return metadata


def build_structured_data(post: Post, site: Settings = settings) -> dict:
    base = site.BASE_BLOG_URL.rstrip("/")
    url = post_url(post, site)
    return {
        "@context": "https://schema.org",
        "@type": "BlogPosting",
        "headline": post.title,
        "description": _description(post),
        "author": {"@type": "Person", "name": site.AUTHOR_NAME, "url": f"{base}/about"},
        "publisher": {
            "@type": "Organization",
            "name": site.SITE_NAME,
            "url": base,
            "logo": {"@type": "ImageObject", "url": f"{base}/logo.png"},
        },
        "datePublished": ms_to_iso(post.publishedAt),
        "dateModified": ms_to_iso(post.updatedAt or post.publishedAt),
        "mainEntityOfPage": {"@type": "WebPage", "@id": url},
        "url": url,
        "keywords": post.tags,
        "wordCount": len(strip_html(post.content).split()),
        "timeRequired": f"PT{post.readingTime}M",
        "articleSection": "Blog",
        "inLanguage": "en-US",
    }


def build_sitemap(
    posts: Iterable[Post], site: Settings = settings, now: Optional[datetime.datetime] = None
) -> str:
    """Site map of the static pages and the given (published) posts."""
    base = site.BASE_BLOG_URL.rstrip("/")
    today = (now or datetime.datetime.now(datetime.timezone.utc)).date().isoformat()

    urlset = ET.Element("urlset", xmlns=SITEMAP_NS)
    for path, frequency, priority in STATIC_PAGES:
        _add_url(urlset, f"{base}{path}", today, frequency, priority)

    for post in posts:
        if not post.published:
            continue
        modified = ms_to_iso(post.updatedAt or post.publishedAt)
        _add_url(
            urlset,
            post_url(post, site),
            modified[:10] if modified else today,
            "monthly",
            0.9,
        )

    return ET.tostring(urlset, encoding="utf-8", xml_declaration=True).decode("utf-8")


def _add_url(parent, loc: str, lastmod: str, frequency: str, priority: float) -> None:
    node = ET.SubElement(parent, "url")
    ET.SubElement(node, "loc").text = loc
    ET.SubElement(node, "lastmod").text = lastmod
    ET.SubElement(node, "changefreq").text = frequency
    ET.SubElement(node, "priority").text = f"{priority:.1f}"
