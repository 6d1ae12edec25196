import time

from fastreq.cookies import CookieJar, default_path, domain_match, path_match


def test_host_only_cookie():
    jar = CookieJar()
    jar.extract("http://example.com/", ["session=abc"])
    assert jar.get_cookie_header("http://example.com/any") == "session=abc"
    assert jar.get_cookie_header("http://sub.example.com/") is None
    assert jar.get_cookie_header("http://other.com/") is None


def test_domain_cookie_covers_subdomains():
    jar = CookieJar()
    jar.extract("http://www.example.com/", ["id=1; Domain=example.com"])
    assert jar.get_cookie_header("http://api.example.com/") == "id=1"
    assert jar.get_cookie_header("http://example.com/") == "id=1"
    assert jar.get_cookie_header("http://notexample.com/") is None


def test_foreign_domain_is_rejected():
    jar = CookieJar()
    jar.extract("http://example.com/", ["id=1; Domain=evil.com"])
    assert len(jar) == 0


def test_default_path_and_path_scoping():
    jar = CookieJar()
    jar.extract("http://example.com/app/login", ["a=1"])
    assert jar.get_cookie_header("http://example.com/app/home") == "a=1"
    assert jar.get_cookie_header("http://example.com/application") is None
    assert jar.get_cookie_header("http://example.com/") is None


def test_longer_paths_first():
    jar = CookieJar()
    jar.extract("http://example.com/", ["a=root; Path=/", "b=deep; Path=/x/y"])
    assert jar.get_cookie_header("http://example.com/x/y/z") == "b=deep; a=root"


def test_expiry_and_max_age():
    jar = CookieJar()
    jar.extract("http://example.com/", ["old=1; Expires=Thu, 01 Jan 1970 00:00:00 GMT"])
    assert "old" not in jar
    jar.extract("http://example.com/", ["keep=1; Max-Age=60"])
    assert jar.get("keep") == "1"
    jar.extract("http://example.com/", ["keep=1; Max-Age=0"])
    assert "keep" not in jar


def test_secure_cookie_needs_https():
    jar = CookieJar()
    jar.extract("https://example.com/", ["s=1; Secure"])
    assert jar.get_cookie_header("http://example.com/") is None
    assert jar.get_cookie_header("https://example.com/") == "s=1"


def test_replacement_and_removal():
    jar = CookieJar()
    jar.extract("http://example.com/", ["a=1", "a=2"])
    assert jar.get("a") == "2"
    assert len(jar) == 1
    jar.set("b", "3", domain=".example.com", expires=time.time() + 60)
    jar.remove("a")
    assert jar.get_cookie_header("http://www.example.com/") == "b=3"
    jar.clear()
    assert len(jar) == 0


def test_matching_helpers():
    assert domain_match("a.example.com", "example.com")
    assert not domain_match("1.2.3.4", "3.4")
    assert path_match("/docs/x", "/docs")
    assert not path_match("/docsx", "/docs")
    assert default_path("/a/b/c") == "/a/b"
    assert default_path("/a") == "/"
    assert default_path("") == "/"
