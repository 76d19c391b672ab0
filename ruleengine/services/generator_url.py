"""
规则回链生成服务。

为告警通知生成指向规则编辑页的链接，随通知发送到 Slack 等第三方系统，便于从通知回溯到规则定义。
链接缺失只影响展示，不影响告警投递：任何无法解析的来源地址都返回空字符串，而不是抛出异常。
"""
import logging
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)


def prepare_rule_generator_url(rule_id: str, source: str) -> str:
    """根据规则来源地址生成 /alerts/edit?ruleId=<id> 链接，返回空字符串表示不附带链接。"""
    if not source:
        return ""

    try:
        parsed = urlsplit(source)
        port = parsed.port
    except ValueError:
        logger.debug("Rule %s has an unparseable source url: %s", rule_id, source)
        return ""
    if not parsed.scheme or not parsed.hostname:
        logger.debug("Rule %s source is not an absolute url: %s", rule_id, source)
        return ""

    # 新建规则时前端记录的是 window.location，即 host:port/alerts/new，
    # 此时将最后一个 new 及其后内容替换为 edit?ruleId=
    has_new = source.rfind("new")
    if has_new > -1:
        return f"{source[:has_new]}edit?ruleId={rule_id}"

    # 来源地址中带有编码后的查询、起止时间等参数，这里全部丢弃以缩短通知内容
    if port is not None:
        return f"{parsed.scheme}://{parsed.hostname}:{port}/alerts/edit?ruleId={rule_id}"
    return f"{parsed.scheme}://{parsed.hostname}/alerts/edit?ruleId={rule_id}"
