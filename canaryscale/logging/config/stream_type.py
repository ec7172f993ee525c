from enum import Enum


class StreamType(Enum):
    STDOUT = "stdout"
    STDERR = "stderr"

    @classmethod
    def from_output(cls, output: str):
        return cls.STDERR if output == "stderr" else cls.STDOUT
