import textwrap
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, field_validator

INDENT = "    "


def docstring_literal(text: str) -> str:
    """Тройные кавычки вокруг текста с экранированием"""
    text = text.strip().replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
    if "\n" in text:
        return f'"""\n{text}\n"""'
    return f'"""{text}"""'


def indent(text: str) -> str:
    return textwrap.indent(text, INDENT)


class Variable(BaseModel):
    """Выражение: тип аннотации или значение по умолчанию"""

    value: List[Union["Variable", str]] = []

    @field_validator("value", mode="before")
    def value_check(cls, value):
        _value = value

        if not isinstance(value, list):
            _value = [value]

        return _value

    def __str__(self):
        return ", ".join(str(_) for _ in self.value)


class Parameter(BaseModel):
    name: str

    default: Optional[Variable] = None
    var_type: Optional[Variable] = None

    order: int = 0

    def set_default(self, default: Union[str, Variable], **kwargs) -> "Parameter":
        if isinstance(default, str):
            default = Variable(value=default, **kwargs)

        self.default = default
        return self

    def set_type(self, var_type: Union[str, Variable], **kwargs) -> "Parameter":
        if isinstance(var_type, str):
            var_type = Variable(value=var_type, **kwargs)

        self.var_type = var_type
        return self

    def __str__(self):
        return (
            self.name
            + (f": {self.var_type}" if self.var_type else "")
            + (f" = {self.default}" if self.default else "")
        )


class CodeBlock(BaseModel):
    order: int = 0
    code: str = "pass"

    def __str__(self):
        return self.code.replace("\t", INDENT)


class Function(BaseModel):
    name: str
    parameters: List[Parameter] = []
    response: str = "None"

    async_def: bool = False
    docstring: Optional[str] = None

    code: CodeBlock = CodeBlock(order=0, code="pass")

    order: int = 0

    def __str__(self) -> str:
        # Параметры без значения по умолчанию идут первыми
        parameters = sorted(self.parameters, key=lambda x: bool(x.default))

        if len(parameters) > 1:
            signature = "\n" + "".join(f"\t{p},\n" for p in parameters)
        else:
            signature = ", ".join(map(str, parameters))

        lines = [
            f"{'async ' if self.async_def else ''}def {self.name}({signature})"
            f" -> {self.response}:"
        ]
        if self.docstring:
            lines.append(indent(docstring_literal(self.docstring)))
        lines.append(indent(str(self.code)))

        return "\n".join(lines).replace("\t", INDENT)


class Class(BaseModel):
    name: str

    functions: Dict[str, "Function"] = {}
    parameters: List[Parameter] = []

    inherits: List[str] = []
    docstring: Optional[str] = None

    order: int = 0

    def __str__(self) -> str:
        members = sorted(
            self.parameters + list(self.functions.values()),
            key=lambda x: x.order,
            reverse=True,
        )

        body = docstring_literal(self.docstring) if self.docstring else ""
        previous = None
        for member in members:
            if body:
                # Атрибуты подряд без пустых строк, остальное через пустую строку
                both_parameters = isinstance(member, Parameter) and isinstance(
                    previous, Parameter
                )
                body += "\n" if both_parameters else "\n\n"
            body += str(member)
            previous = member

        return (
            f"class {self.name}"
            + (f"({', '.join(self.inherits)})" if self.inherits else "")
            + ":\n"
            + indent(body or "pass")
        ).replace("\t", INDENT)

    def add_function(self, function: Union["Function", str], **kwargs) -> "Function":
        if isinstance(function, str):
            function = Function(name=function, **kwargs)

        self.functions[function.name] = function
        return function

    def add_parameter(self, parameter: Union[Parameter, str], **kwargs) -> Parameter:
        if isinstance(parameter, str):
            parameter = Parameter(name=parameter, **kwargs)

        self.parameters.append(parameter)
        return parameter


class CodeFile(BaseModel):
    file_name: str

    imports: List[str] = []
    classes: Dict[str, "Class"] = {}
    code_blocks: List["CodeBlock"] = []

    def __str__(self):
        items = sorted(
            self.code_blocks + list(self.classes.values()),
            key=lambda x: x.order,
            reverse=True,
        )
        sections = []
        if self.imports:
            sections.append("\n".join(self.imports))
        sections.extend(str(item) for item in items)

        return ("\n\n\n".join(filter(bool, sections)) + "\n").replace("\t", INDENT)

    def add_class(self, cls: Union["Class", str], **kwargs) -> "Class":
        if isinstance(cls, str):
            cls = Class(name=cls, **kwargs)

        self.classes[cls.name] = cls
        return cls

    def add_code_block(
        self, code_block: Union["CodeBlock", str], **kwargs
    ) -> "CodeBlock":
        if isinstance(code_block, str):
            code_block = CodeBlock(code=code_block, **kwargs)

        self.code_blocks.append(code_block)
        return code_block


Class.model_rebuild()
CodeFile.model_rebuild()


class Project(BaseModel):
    name: str
    files: List[CodeFile] = []

    def add_file(self, file_name: Union["CodeFile", str], **kwargs) -> "CodeFile":
        code_file = (
            CodeFile(file_name=file_name, **kwargs)
            if isinstance(file_name, str)
            else file_name
        )
        self.files.append(code_file)
        return code_file

    def get_file(self, file_name: str) -> Optional[CodeFile]:
        return next((f for f in self.files if f.file_name == file_name), None)

    def file_names(self) -> List[str]:
        return [f.file_name for f in self.files]

    def render(self) -> Dict[str, str]:
        """Имя файла -> текст файла"""
        return {f.file_name: str(f) for f in self.files}
