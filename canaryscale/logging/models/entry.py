from typing import Any, Dict

import msgspec

from .log_level import LogLevel


class Entry(msgspec.Struct, kw_only=True):
    message: str | None = None
    tags: set[str] = msgspec.field(
        default_factory=set,
    )
    level: LogLevel

    def to_template(
        self,
        template: str,
        context: Dict[str, Any] | None = None,
    ):
        """
        Render the entry into a line. Unset fields render as "-" and
        tags as a sorted comma separated list, so optional release
        coordinates (a probe run outside any stage) keep lines aligned.
        """
        kwargs: Dict[
            str,
            int | str | bool | float | LogLevel | list | dict | set | Any,
        ] = {
            field: "-" if (value := getattr(self, field)) is None else value
            for field in self.__struct_fields__
        }

        kwargs["level"] = self.level.value
        kwargs["tags"] = ",".join(sorted(self.tags))

        if context:
            kwargs.update(context)

        return template.format(**kwargs)
