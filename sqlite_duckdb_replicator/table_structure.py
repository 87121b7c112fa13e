from dataclasses import dataclass, field


@dataclass
class TableField:
    name: str = ''
    field_type: str = ''
    not_null: bool = False
    primary_key: bool = False
    autoincrement: bool = False
    default: str | None = None


@dataclass
class TableStructure:
    fields: list = field(default_factory=list)
    primary_keys: list[str] = field(default_factory=list)
    primary_key_ids: list[int] = field(default_factory=list)
    table_name: str = ''
    if_not_exists: bool = False

    def preprocess(self):
        field_names = [f.name.lower() for f in self.fields]
        self.primary_key_ids = [
            field_names.index(key.lower()) for key in self.primary_keys
        ]
        for idx, table_field in enumerate(self.fields):
            table_field.primary_key = idx in self.primary_key_ids

    def get_field(self, field_name):
        for table_field in self.fields:
            if table_field.name.lower() == field_name.lower():
                return table_field
        return None

    @property
    def field_names(self):
        return [f.name for f in self.fields]
