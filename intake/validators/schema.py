"""Schema compilation — turns a StepRuleSet into a pydantic record model.

Compiled models are the typed view of a step snapshot. Validating a snapshot
against one never stops at the first failure: pydantic reports every broken
field in ValidationError.errors(), which the evaluator harvests in full.
"""

from dataclasses import dataclass, field
from typing import Annotated, Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, create_model, model_validator

from intake.validators.rules import FieldRule, NestedArrayRule, StepRuleSet


def is_blank(value: Any) -> bool:
    """Empty means None, a whitespace-only string or an empty sequence."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


class StepRecord(BaseModel):
    """Base for every compiled record model.

    Blank values are dropped before validation, so a blank required field is
    reported as missing and a blank optional field is simply absent.
    """

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_blank_values(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            return {key: value for key, value in data.items() if not is_blank(value)}
        return data


@dataclass
class CompiledStep:
    """Record model for one step plus single-field adapters."""

    rule_set: StepRuleSet
    record_model: type[StepRecord]
    item_models: dict[str, type[StepRecord]] = field(default_factory=dict)
    _adapters: dict[str, TypeAdapter] = field(default_factory=dict, repr=False)

    def adapter_for(self, name: str) -> Optional[TypeAdapter]:
        """TypeAdapter checking a single field (or whole sequence) value."""
        if name in self._adapters:
            return self._adapters[name]

        array = self.rule_set.array_rule(name)
        if array is not None:
            adapter = TypeAdapter(_list_annotation(array, self.item_models[array.name]))
        else:
            rule = self.rule_set.find_rule(name)
            if rule is None:
                return None
            adapter = TypeAdapter(rule.annotation())

        self._adapters[name] = adapter
        return adapter


def _camel(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_"))


def _field_definition(rule: FieldRule) -> tuple[Any, Any]:
    annotation = rule.annotation()
    # Conditional requirements are resolved per record by the reconciliation pass
    if rule.required and rule.required_when is None:
        return (annotation, ...)
    return (Optional[annotation], None)


def _list_annotation(array: NestedArrayRule, item_model: type[StepRecord]) -> Any:
    return Annotated[list[item_model], Field(min_length=array.min_items)]


def compile_rule_set(rule_set: StepRuleSet) -> CompiledStep:
    """Build the pydantic record model for a step rule set."""
    definitions: dict[str, tuple[Any, Any]] = {
        rule.name: _field_definition(rule) for rule in rule_set.field_rules
    }
    item_models: dict[str, type[StepRecord]] = {}

    for array in rule_set.array_rules:
        item_model = create_model(
            f"{_camel(rule_set.key)}{_camel(array.name)}Item",
            __base__=StepRecord,
            **{rule.name: _field_definition(rule) for rule in array.item_rules},
        )
        item_models[array.name] = item_model
        annotation = _list_annotation(array, item_model)
        definitions[array.name] = (annotation, ...) if array.required else (Optional[annotation], None)

    record_model = create_model(
        f"{_camel(rule_set.key)}Record",
        __base__=StepRecord,
        **definitions,
    )
    return CompiledStep(rule_set=rule_set, record_model=record_model, item_models=item_models)
