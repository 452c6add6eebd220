# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""DMS table mapping rules.

Selection rules decide which schemas and tables are replicated. Schema rename
transformation rules are added when the mapping is compiled.
"""

import copy
import json
from ..exceptions import ConfigurationException
from ..models import DatabaseTable
from typing import Any, Dict, List, Optional


WILDCARD = '%'


class TableMapping:
    """Ordered DMS table mapping rule set."""

    def __init__(self, schema_map: Optional[Dict[str, str]] = None):
        """Initialize an empty rule set.

        Args:
            schema_map: Source schema name to target schema name
        """
        self._rules: List[Dict[str, Any]] = []
        self._schema_map = dict(schema_map or {})
        self._lowercase = False

    def _next_rule_id(self) -> str:
        return str(len(self._rules) + 1)

    def _add_selection(
        self, schema_name: str, table_name: str, action: str, rule_name: str
    ) -> 'TableMapping':
        self._rules.append(
            {
                'rule-type': 'selection',
                'rule-id': self._next_rule_id(),
                'rule-name': rule_name,
                'object-locator': {'schema-name': schema_name, 'table-name': table_name},
                'rule-action': action,
            }
        )
        return self

    def _add_rename(self, schema_name: str, value: str, rule_name: str) -> None:
        self._rules.append(
            {
                'rule-type': 'transformation',
                'rule-id': self._next_rule_id(),
                'rule-name': rule_name,
                'rule-target': 'schema',
                'object-locator': {'schema-name': schema_name},
                'rule-action': 'rename',
                'value': value,
            }
        )

    def include_schema(self, schema_name: str, rule_name: Optional[str] = None) -> 'TableMapping':
        """Replicate every table of a schema."""
        return self._add_selection(
            schema_name, WILDCARD, 'include', rule_name or f'IncludeSchema-{schema_name}'
        )

    def include_schemas(self, schema_names: List[str]) -> 'TableMapping':
        for schema_name in schema_names:
            self.include_schema(schema_name)
        return self

    def exclude_schema(self, schema_name: str, rule_name: Optional[str] = None) -> 'TableMapping':
        """Skip every table of a schema."""
        return self._add_selection(
            schema_name, WILDCARD, 'exclude', rule_name or f'ExcludeSchema-{schema_name}'
        )

    def exclude_schemas(self, schema_names: List[str]) -> 'TableMapping':
        for schema_name in schema_names:
            self.exclude_schema(schema_name)
        return self

    def include_table(
        self, schema_name: str, table_name: str, rule_name: Optional[str] = None
    ) -> 'TableMapping':
        """Replicate a table, or the tables matching a % pattern."""
        return self._add_selection(
            schema_name,
            table_name,
            'include',
            rule_name or f'includetable-{schema_name}-{table_name}',
        )

    def include_tables(self, schema_name: str, table_names: List[str]) -> 'TableMapping':
        for table_name in table_names:
            self.include_table(schema_name, table_name)
        return self

    def exclude_table(
        self, schema_name: str, table_name: str, rule_name: Optional[str] = None
    ) -> 'TableMapping':
        """Skip a table, or the tables matching a % pattern."""
        return self._add_selection(
            schema_name,
            table_name,
            'exclude',
            rule_name or f'exclude-table-{schema_name}-{table_name}',
        )

    def exclude_tables(self, schema_name: str, table_names: List[str]) -> 'TableMapping':
        for table_name in table_names:
            self.exclude_table(schema_name, table_name)
        return self

    def lower_case_target_table_names(self) -> 'TableMapping':
        """Rename target schemas to lower case when compiled."""
        self._lowercase = True
        return self

    def _selected_schemas(self) -> List[str]:
        names: List[str] = []
        for rule in self._rules:
            if rule['rule-type'] != 'selection':
                continue
            name = rule['object-locator']['schema-name']
            if name not in names:
                names.append(name)
        return names

    def _has_rename(self, schema_name: str) -> bool:
        return any(
            rule['rule-action'] == 'rename'
            and rule.get('rule-target') == 'schema'
            and rule['object-locator']['schema-name'] == schema_name
            for rule in self._rules
        )

    def compile(self) -> Dict[str, Any]:
        """Finalize the rule set and return it in DMS wire format.

        Adds a catch-all include rule when nothing is selected, then one rename
        rule per selected schema. A mapped target name takes precedence over
        plain lower casing. Compiling again adds nothing.
        """
        if not self._selected_schemas():
            self._add_selection(WILDCARD, WILDCARD, 'include', 'AllSchemasAllTables')

        for schema_name in self._selected_schemas():
            if WILDCARD in schema_name or self._has_rename(schema_name):
                continue

            if schema_name in self._schema_map:
                target = self._schema_map[schema_name]
                if self._lowercase:
                    target = target.lower()
                self._add_rename(schema_name, target, f'rename-schema-{schema_name}')
            elif self._lowercase:
                self._add_rename(
                    schema_name, schema_name.lower(), f'lowercase-schema-{schema_name}'
                )

        return {'rules': copy.deepcopy(self._rules)}

    def to_json(self, indent: Optional[int] = None) -> str:
        """Compile and serialize, compact unless an indent is given."""
        return json.dumps(self.compile(), indent=indent)

    @classmethod
    def include_test_tables(
        cls,
        test_tables: List[DatabaseTable],
        schema_map: Optional[Dict[str, str]] = None,
        rule_name: str = 'include-test-tables',
    ) -> 'TableMapping':
        """Mapping restricted to a named handful of tables.

        Raises:
            ConfigurationException: No test tables given
        """
        pairs = [(t.schema_name, name) for t in test_tables for name in t.table_names]
        if not pairs:
            raise ConfigurationException(
                'No test tables provided for a smoke test table mapping',
                missing_fields=['SOURCE_TEST_TABLES'],
            )

        mapping = cls(schema_map)
        for schema_name, table_name in pairs:
            mapping.include_table(schema_name, table_name, f'{rule_name}-{schema_name}-{table_name}')
        return mapping
