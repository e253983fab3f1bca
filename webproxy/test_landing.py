from webproxy.landing import render_landing_page
from webproxy.proxy.config import ProxyConfig
from webproxy.proxy.models import Addressing


def test_query_mode_uses_target_param():
    page = render_landing_page(ProxyConfig(target_param="target", query_route="/go"))

    assert 'action="/go"' in page
    assert 'name="target"' in page
    assert "<script>" not in page


def test_path_mode_navigates_with_encoded_target():
    page = render_landing_page(ProxyConfig(addressing=Addressing.PATH, path_prefix="/p"))

    assert '"/p/" + encodeURIComponent(target)' in page


def test_public_url_prefixes_action():
    page = render_landing_page(ProxyConfig(public_url="https://proxy.example.org"))

    assert 'action="https://proxy.example.org/proxy"' in page
