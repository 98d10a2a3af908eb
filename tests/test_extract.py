from linkcrawler.extract import extract_page, iter_static_resources


PAGE = """
<html>
  <head>
    <title> Example Home </title>
    <meta name="description" content="Welcome">
    <meta name="robots" content="index,follow">
    <meta property="og:title" content="OG Home">
    <meta name="twitter:card" content="summary">
    <meta name="viewport" content="width=device-width">
    <meta name="keywords">
    <link rel="stylesheet" href="/css/site.css">
    <link rel="preload" as="font" href="/fonts/a.woff2">
    <link rel="icon" href="/favicon.ico">
    <script src="/js/app.js"></script>
    <script>var inline = 1;</script>
  </head>
  <body>
    <a href="/about">About</a>
    <a href="#top">Top</a>
    <a href="mailto:me@ex.com">Mail</a>
    <a href="https://other.com/x#frag">Other</a>
    <a>No href</a>
    <a href="/about">Again</a>
    <img src="img/logo.png">
    <video src="/media/clip.mp4"></video>
  </body>
</html>
"""


def test_extract_page_anchors_in_document_order():
    page = extract_page(PAGE, base_url="https://ex.com/index.html")

    assert page.anchors == [
        "https://ex.com/about",
        "https://other.com/x#frag",
        "https://ex.com/about",
    ]


def test_extract_page_meta_fields():
    page = extract_page(PAGE, base_url="https://ex.com/")

    assert page.meta_fields == {
        "title": "Example Home",
        "description": "Welcome",
        "robots": "index,follow",
        "og:title": "OG Home",
        "twitter:card": "summary",
    }


def test_extract_page_without_title():
    page = extract_page("<html><body></body></html>", base_url="https://ex.com/")
    assert page.meta_fields == {"title": ""}
    assert page.anchors == []


def test_iter_static_resources():
    resources = list(iter_static_resources(PAGE, base_url="https://ex.com/dir/"))

    assert resources == [
        ("https://ex.com/dir/img/logo.png", "image"),
        ("https://ex.com/js/app.js", "script"),
        ("https://ex.com/css/site.css", "stylesheet"),
        ("https://ex.com/fonts/a.woff2", "font"),
        ("https://ex.com/media/clip.mp4", "media"),
    ]
