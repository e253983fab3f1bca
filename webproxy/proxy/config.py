from dataclasses import dataclass
from typing import Optional

from webproxy import vars as proxy_vars
from webproxy.proxy.models import Addressing, BodyMode, HeaderMode, RewriteContext


@dataclass(frozen=True)
class ProxyConfig:
    """
    Configuration of the single rewriting pipeline.

    - addressing: ``path`` embeds the percent-encoded target after
      ``path_prefix``; ``query`` carries it in ``target_param`` on
      ``query_route``.
    - header_mode: ``denylist`` forwards a filtered copy of the inbound
      headers; ``allowlist`` sends only User-Agent, Accept and
      Accept-Language.
    - body_mode: ``stream`` relays non-HTML bodies chunk by chunk;
      ``buffer`` reads them fully first. HTML is always buffered.
    - forward_query: whether inbound query parameters other than the control
      parameters are appended to the target URL. Deployments disagree on
      this, so it is a flag rather than a fixed behavior.
    """

    addressing: Addressing = Addressing.QUERY
    header_mode: HeaderMode = HeaderMode.DENYLIST
    body_mode: BodyMode = BodyMode.STREAM
    forward_query: bool = True
    path_prefix: str = ""
    query_route: str = "/proxy"
    target_param: str = "url"
    debug_param: Optional[str] = "debug"
    public_url: str = ""
    timeout: Optional[float] = None
    default_user_agent: str = proxy_vars.PROXY_DEFAULT_USER_AGENT
    default_accept: str = proxy_vars.PROXY_DEFAULT_ACCEPT
    default_accept_language: str = proxy_vars.PROXY_DEFAULT_ACCEPT_LANGUAGE

    @classmethod
    def from_env(cls) -> "ProxyConfig":
        return cls(
            addressing=Addressing(proxy_vars.PROXY_ADDRESSING),
            header_mode=HeaderMode(proxy_vars.PROXY_HEADER_POLICY),
            body_mode=BodyMode(proxy_vars.PROXY_BODY_MODE),
            forward_query=proxy_vars.PROXY_FORWARD_QUERY,
            path_prefix=proxy_vars.PROXY_PATH_PREFIX,
            query_route=proxy_vars.PROXY_QUERY_ROUTE,
            target_param=proxy_vars.PROXY_TARGET_PARAM,
            debug_param=proxy_vars.PROXY_DEBUG_PARAM or None,
            public_url=proxy_vars.PUBLIC_URL,
            timeout=proxy_vars.PROXY_TIMEOUT,
            default_user_agent=proxy_vars.PROXY_DEFAULT_USER_AGENT,
            default_accept=proxy_vars.PROXY_DEFAULT_ACCEPT,
            default_accept_language=proxy_vars.PROXY_DEFAULT_ACCEPT_LANGUAGE,
        )

    def rewrite_context(self, target_url: str) -> RewriteContext:
        return RewriteContext(
            target_url=target_url,
            addressing=self.addressing,
            path_prefix=self.path_prefix,
            query_route=self.query_route,
            target_param=self.target_param,
            public_url=self.public_url,
        )
