from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError


SCHEMA_VERSION = 1

EdgeKind = Literal["control", "data"]


class StrategyParseError(ValueError):
    """Raised when a strategy document does not match the strategy model."""


class _StrategyModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class NodePosition(_StrategyModel):
    x: float = 0.0
    y: float = 0.0


class StrategyMetadata(_StrategyModel):
    name: str = "Untitled strategy"
    description: str | None = None
    created_at: str | None = Field(default=None, alias="createdAt")
    updated_at: str | None = Field(default=None, alias="updatedAt")
    author: str | None = None
    tags: tuple[str, ...] = ()


class StrategyNode(_StrategyModel):
    id: str = Field(min_length=1)
    type: str
    config: dict[str, Any] = Field(default_factory=dict)
    label: str | None = None
    position: NodePosition = Field(default_factory=NodePosition)

    @property
    def disabled(self) -> bool:
        return bool(self.config.get("disabled"))


class StrategyEdge(_StrategyModel):
    id: str = Field(min_length=1)
    # Older documents call the edge kind "type".
    kind: EdgeKind = Field(validation_alias=AliasChoices("kind", "type"))
    source: str
    source_port: str = Field(alias="sourcePort")
    target: str
    target_port: str = Field(alias="targetPort")


class Strategy(_StrategyModel):
    version: int
    metadata: StrategyMetadata = Field(default_factory=StrategyMetadata)
    nodes: tuple[StrategyNode, ...] = ()
    edges: tuple[StrategyEdge, ...] = ()

    def node(self, node_id: str) -> StrategyNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def restricted_to(self, node_ids: Iterable[str]) -> Strategy:
        """Return a copy holding only the given nodes and the edges between them."""
        keep = set(node_ids)
        return self.model_copy(
            update={
                "nodes": tuple(node for node in self.nodes if node.id in keep),
                "edges": tuple(
                    edge for edge in self.edges if edge.source in keep and edge.target in keep
                ),
            }
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def parse_strategy(payload: Strategy | Mapping[str, Any] | str | bytes) -> Strategy:
    if isinstance(payload, Strategy):
        return payload
    try:
        if isinstance(payload, (str, bytes)):
            return Strategy.model_validate_json(payload)
        return Strategy.model_validate(dict(payload))
    except ValidationError as exc:
        raise StrategyParseError(f"Invalid strategy document: {exc}") from exc
