"""
变量引用解析器

配置字符串中可以嵌入以下引用，实际取值由执行服务在运行时完成：

    {{$timestamp}}                  当前时间
    {{$result}}                     上游节点的完整输出
    {{$result.<NodeName>}}          指定节点的完整输出
    {{$result.<NodeName>.<key>}}    指定节点输出中的字段（key 可用 . 继续深入）

这里只做语法层面的识别与校验，供自动补全和运行前检查使用。
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..exceptions import VariableReferenceError
from ..models.config import iter_text_fields
from ..models.scenario import Node, Scenario


OPEN = "{{"
CLOSE = "}}"
TIMESTAMP = "timestamp"
RESULT = "result"


class ReferenceKind(Enum):
    """引用类型"""
    TIMESTAMP = "timestamp"
    RESULT = "result"
    NODE_RESULT = "node_result"


class IssueKind(Enum):
    """问题类型"""
    MALFORMED = "malformed"
    UNKNOWN_NODE = "unknown_node"
    AMBIGUOUS_NODE = "ambiguous_node"


@dataclass(frozen=True)
class VariableReference:
    """一个格式正确的引用"""
    token: str
    kind: ReferenceKind
    start: int = 0
    node_name: Optional[str] = None
    key_path: Optional[str] = None

    @property
    def keys(self) -> Tuple[str, ...]:
        return tuple(self.key_path.split(".")) if self.key_path else ()


@dataclass(frozen=True)
class ReferenceIssue:
    """引用问题"""
    token: str
    message: str
    kind: IssueKind = IssueKind.MALFORMED
    start: int = 0
    field: Optional[str] = None


@dataclass
class ParseResult:
    """解析结果"""
    references: List[VariableReference] = field(default_factory=list)
    errors: List[ReferenceIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def node_names(self) -> List[str]:
        names = []
        for ref in self.references:
            if ref.node_name is not None and ref.node_name not in names:
                names.append(ref.node_name)
        return names


class VariableReferenceParser:
    """变量引用解析器"""

    def parse(self, text: str) -> ParseResult:
        """
        扫描文本中的全部引用

        与引用无关的文本（包括 JSON 中的单个花括号或孤立的 "}}"）会被忽略；
        未闭合或嵌套的 "{{" 记为格式错误。
        """
        result = ParseResult()
        if not text:
            return result

        pos = 0
        while True:
            start = text.find(OPEN, pos)
            if start == -1:
                break

            end = text.find(CLOSE, start + len(OPEN))
            reopen = text.find(OPEN, start + len(OPEN))

            if end == -1:
                result.errors.append(ReferenceIssue(
                    token=text[start:],
                    message="unbalanced braces: missing '}}'",
                    start=start,
                ))
                break

            if reopen != -1 and reopen < end:
                result.errors.append(ReferenceIssue(
                    token=text[start:reopen],
                    message="unbalanced braces: '{{' opened again before '}}'",
                    start=start,
                ))
                pos = reopen
                continue

            token = text[start:end + len(CLOSE)]
            try:
                result.references.append(self._parse_token(token, start))
            except VariableReferenceError as e:
                result.errors.append(ReferenceIssue(token=token, message=str(e), start=start))
            pos = end + len(CLOSE)

        return result

    def parse_reference(self, token: str) -> VariableReference:
        """解析单个完整的引用，格式错误时抛出 VariableReferenceError"""
        if not (token.startswith(OPEN) and token.endswith(CLOSE)) or len(token) < len(OPEN) + len(CLOSE):
            raise VariableReferenceError(token, "unbalanced braces")
        return self._parse_token(token, 0)

    def references(self, text: str) -> List[VariableReference]:
        """只返回格式正确的引用"""
        return self.parse(text).references

    def _parse_token(self, token: str, start: int) -> VariableReference:
        inner = token[len(OPEN):-len(CLOSE)]
        if OPEN in inner or CLOSE in inner:
            raise VariableReferenceError(token, "unbalanced braces")
        if not inner.startswith("$"):
            raise VariableReferenceError(token, "expected a '$' variable")

        head, sep, rest = inner[1:].partition(".")

        if head == TIMESTAMP:
            if sep:
                raise VariableReferenceError(token, "'$timestamp' does not take a path")
            return VariableReference(token=token, kind=ReferenceKind.TIMESTAMP, start=start)

        if head == RESULT:
            if not sep:
                return VariableReference(token=token, kind=ReferenceKind.RESULT, start=start)

            node_name, key_sep, key_path = rest.partition(".")
            if not node_name:
                raise VariableReferenceError(token, "empty node name")
            if key_sep and any(not key for key in key_path.split(".")):
                raise VariableReferenceError(token, "empty key segment")

            return VariableReference(
                token=token,
                kind=ReferenceKind.NODE_RESULT,
                start=start,
                node_name=node_name,
                key_path=key_path if key_sep else None,
            )

        if not head:
            raise VariableReferenceError(token, "empty variable name")
        raise VariableReferenceError(token, f"unknown variable '${head}'")

    def check(self, text: str, scenario: Scenario, node: Node = None) -> List[ReferenceIssue]:
        """
        校验文本中的引用

        节点名称引用只有在同一场景的其他节点中存在完全相同（区分大小写）的名称时才有效；
        同名节点超过一个时记为歧义。
        """
        parsed = self.parse(text)
        issues = list(parsed.errors)

        for ref in parsed.references:
            if ref.kind != ReferenceKind.NODE_RESULT:
                continue

            matches = [
                candidate for candidate in scenario.find_nodes_by_name(ref.node_name)
                if node is None or candidate.id != node.id
            ]
            if not matches:
                issues.append(ReferenceIssue(
                    token=ref.token,
                    message=f"no other node named '{ref.node_name}' in scenario",
                    kind=IssueKind.UNKNOWN_NODE,
                    start=ref.start,
                ))
            elif len(matches) > 1:
                issues.append(ReferenceIssue(
                    token=ref.token,
                    message=f"{len(matches)} nodes are named '{ref.node_name}'",
                    kind=IssueKind.AMBIGUOUS_NODE,
                    start=ref.start,
                ))

        return issues

    def scan_node(self, scenario: Scenario, node: Node) -> List[ReferenceIssue]:
        """校验节点配置中全部字符串字段"""
        issues = []
        for field_name, value in iter_text_fields(node.config):
            for issue in self.check(value, scenario, node):
                issues.append(ReferenceIssue(
                    token=issue.token,
                    message=issue.message,
                    kind=issue.kind,
                    start=issue.start,
                    field=field_name,
                ))
        return issues

    def scan_scenario(self, scenario: Scenario) -> Dict[str, List[ReferenceIssue]]:
        """按节点ID汇总场景中的引用问题"""
        report = {}
        for node in scenario.nodes:
            issues = self.scan_node(scenario, node)
            if issues:
                report[node.id] = issues
        return report

    def suggestions(self, scenario: Scenario, node: Node = None) -> List[str]:
        """
        自动补全候选

        名称为空或含有 "."、"{{"、"}}" 的节点无法写成引用，不会出现在候选中。
        """
        items = [_token(TIMESTAMP), _token(RESULT)]
        for candidate in scenario.nodes:
            if node is not None and candidate.id == node.id:
                continue
            if not is_referenceable_name(candidate.name):
                continue
            items.append(_token(RESULT, candidate.name))
            items.append(_token(RESULT, candidate.name, "output"))
        return items


def _token(*segments: str) -> str:
    return OPEN + "$" + ".".join(segments) + CLOSE


def is_referenceable_name(name: str) -> bool:
    """节点名称能否出现在 {{$result.<NodeName>}} 中"""
    return bool(name) and "." not in name and OPEN not in name and CLOSE not in name
