"""
GRANT script role data source.

This module defines the ScriptRoleSource class, which builds a role snapshot
by replaying a PostgreSQL-style SQL script of CREATE ROLE, GRANT and REVOKE
statements. The script is tokenized with sqlglot; the small grammar of the
role and privilege statements is parsed here from the token stream.

Supported statements:
    CREATE ROLE | USER | GROUP name [WITH] [LOGIN | NOLOGIN | INHERIT |
        NOINHERIT | IN ROLE r, ... | ROLE r, ... | ADMIN r, ... | ...]
    ALTER ROLE | USER | GROUP name [WITH] [LOGIN | NOLOGIN | INHERIT | ...]
    DROP ROLE | USER | GROUP [IF EXISTS] name, ...
    GRANT role, ... TO member, ... [WITH ADMIN | INHERIT | SET
        OPTION | TRUE | FALSE, ...]
    GRANT privilege [(column, ...)], ... ON [TABLE] name, ... TO role, ...
    GRANT privilege, ... ON SCHEMA name, ... TO role, ...
    REVOKE [ADMIN | INHERIT | SET | GRANT OPTION FOR] ... FROM role, ...

Other statements (CREATE TABLE, INSERT, SELECT, ...) do not affect roles and
are skipped. Role or privilege statements that cannot be modelled are
skipped with a warning.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import sqlglot
from sqlglot.errors import TokenError
from sqlglot.tokens import TokenType

from privilege_lineage.exceptions import ScriptParseError, SourceUnavailableError
from privilege_lineage.models.grant import Grant, ResourceKind, ResourceRef
from privilege_lineage.models.role import MembershipEdge, Role
from privilege_lineage.source.dict_source import DictRoleSource
from privilege_lineage.utils.warnings import LineageWarning, WarningCollector

# Privileges "ALL [PRIVILEGES]" expands to, per resource kind
ALL_PRIVILEGES: Dict[ResourceKind, Tuple[str, ...]] = {
    ResourceKind.SCHEMA: ("USAGE", "CREATE"),
    ResourceKind.TABLE: (
        "SELECT",
        "INSERT",
        "UPDATE",
        "DELETE",
        "TRUNCATE",
        "REFERENCES",
        "TRIGGER",
    ),
    ResourceKind.COLUMN: ("SELECT", "INSERT", "UPDATE", "REFERENCES"),
}

ROLE_KEYWORDS = {"ROLE", "USER", "GROUP"}

# GRANT ... ON <kind> targets that are not schemas or tables
UNSUPPORTED_TARGETS = {
    "DATABASE",
    "DOMAIN",
    "FOREIGN",
    "FUNCTION",
    "LANGUAGE",
    "LARGE",
    "PARAMETER",
    "PROCEDURE",
    "ROUTINE",
    "SEQUENCE",
    "TABLESPACE",
    "TYPE",
}

_WORD = "word"
_QUOTED = "quoted"
_STRING = "string"


class _Unsupported(Exception):
    """Raised inside the parser for statement forms that are skipped."""


@dataclass(frozen=True)
class _Word:
    """One word of a statement: a keyword/name, a quoted name or a string."""

    text: str
    kind: str = _WORD

    @property
    def keyword(self) -> str:
        return self.text.upper() if self.kind == _WORD else ""

    def as_name(self) -> str:
        """Name with PostgreSQL case folding for unquoted identifiers."""
        return self.text if self.kind == _QUOTED else self.text.lower()


class _Cursor:
    """Sequential reader over the words of one statement."""

    def __init__(self, words: List[_Word]) -> None:
        self.words = words
        self.pos = 0

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.words)

    def peek(self, offset: int = 0) -> Optional[_Word]:
        index = self.pos + offset
        return self.words[index] if index < len(self.words) else None

    def next(self) -> _Word:
        if self.at_end:
            raise _Unsupported("unexpected end of statement")
        word = self.words[self.pos]
        self.pos += 1
        return word

    def check(self, *keywords: str) -> bool:
        for offset, keyword in enumerate(keywords):
            word = self.peek(offset)
            if word is None or word.keyword != keyword:
                return False
        return True

    def accept(self, *keywords: str) -> bool:
        if self.check(*keywords):
            self.pos += len(keywords)
            return True
        return False

    def expect(self, keyword: str) -> None:
        if not self.accept(keyword):
            found = self.peek()
            raise _Unsupported(
                f"expected {keyword}, found {found.text if found else 'end'}"
            )

    def name(self) -> str:
        word = self.next()
        if word.kind == _STRING or word.text in {",", ".", "(", ")"}:
            raise _Unsupported(f"expected a name, found {word.text!r}")
        return word.as_name()

    def name_list(self) -> List[str]:
        names = [self.name()]
        while self.accept(","):
            names.append(self.name())
        return names


class ScriptRoleSource(DictRoleSource):
    """Role data source built by replaying a GRANT script.

    Attributes:
        default_schema: Schema for unqualified table names.
        implicit_roles: If True, roles referenced before (or without) a
            CREATE ROLE are registered on first use. If False, such
            references are kept as-is: their edges surface as malformed
            edges when loaded and their grants are never reached.
        statement_count: Number of statements in the script.
        applied_count: Number of role or privilege statements applied.
        collector: Diagnostics for skipped statements and implicit roles.

    Example:
        >>> source = ScriptRoleSource.from_string('''
        ...     CREATE ROLE reporting_group NOLOGIN;
        ...     CREATE ROLE alice LOGIN;
        ...     GRANT reporting_group TO alice;
        ...     GRANT SELECT ON hr.employees TO reporting_group;
        ... ''')
        >>> [str(e) for e in source.list_memberships()]
        ['alice -> reporting_group']
    """

    name = "sql"

    def __init__(
        self,
        script: str,
        default_schema: str = "public",
        implicit_roles: bool = True,
        dialect: str = "postgres",
    ) -> None:
        self.default_schema = default_schema
        self.implicit_roles = implicit_roles
        self.dialect = dialect
        self.collector = WarningCollector()
        self.statement_count = 0
        self.applied_count = 0

        self._roles: Dict[str, Role] = {}
        self._edges: Dict[Tuple[str, str], MembershipEdge] = {}
        self._grants: Dict[Grant, None] = {}

        for words in self._split_statements(script):
            self.statement_count += 1
            self._apply(words)

        super().__init__(
            roles=list(self._roles.values()),
            memberships=list(self._edges.values()),
            grants=list(self._grants),
        )

    @classmethod
    def from_string(cls, script: str, **kwargs) -> "ScriptRoleSource":
        return cls(script, **kwargs)

    @classmethod
    def from_file(
        cls, path: Union[str, Path], **kwargs
    ) -> "ScriptRoleSource":
        """Read and replay a script file.

        Raises:
            SourceUnavailableError: If the file cannot be read.
            ScriptParseError: If the script cannot be tokenized.
        """
        script_path = Path(path)
        try:
            script = script_path.read_text(encoding="utf-8")
        except OSError as e:
            raise SourceUnavailableError(
                f"Cannot read GRANT script '{script_path}': {e}",
                source=str(script_path),
            ) from e
        source = cls(script, **kwargs)
        source.name = f"sql:{script_path.name}"
        return source

    def diagnostics(self) -> List[LineageWarning]:
        return self.collector.get_all()

    # === Tokenizing ===

    def _split_statements(self, script: str) -> List[List[_Word]]:
        # psql meta-commands (\c, \du, ...) are not SQL
        lines = [
            line
            for line in script.splitlines()
            if not line.lstrip().startswith("\\")
        ]
        try:
            tokens = sqlglot.tokenize("\n".join(lines), read=self.dialect)
        except TokenError as e:
            raise ScriptParseError(f"Failed to tokenize GRANT script: {e}") from e

        statements: List[List[_Word]] = []
        current: List[_Word] = []
        for token in tokens:
            if token.token_type == TokenType.SEMICOLON:
                if current:
                    statements.append(current)
                    current = []
            elif token.token_type == TokenType.IDENTIFIER:
                current.append(_Word(token.text, _QUOTED))
            elif token.token_type == TokenType.STRING:
                current.append(_Word(token.text, _STRING))
            else:
                # multi-word keywords arrive as a single token
                current.extend(_Word(part) for part in token.text.split())
        if current:
            statements.append(current)
        return statements

    # === Statement dispatch ===

    def _apply(self, words: List[_Word]) -> None:
        cursor = _Cursor(words)
        try:
            if cursor.accept("GRANT"):
                self._apply_grant(cursor, revoke=False)
            elif cursor.accept("REVOKE"):
                self._apply_grant(cursor, revoke=True)
            elif cursor.check("CREATE") and _is_role_keyword(cursor.peek(1)):
                cursor.next()
                self._apply_create_role(cursor)
            elif cursor.check("ALTER") and _is_role_keyword(cursor.peek(1)):
                cursor.next()
                self._apply_alter_role(cursor)
            elif cursor.check("DROP") and _is_role_keyword(cursor.peek(1)):
                cursor.next()
                self._apply_drop_role(cursor)
            else:
                return
        except _Unsupported as e:
            self.collector.add_skipped_statement_warning(
                str(e), _statement_text(words)
            )
            return
        self.applied_count += 1

    # === Roles ===

    def _ensure_role(self, name: str) -> None:
        if name in self._roles or not self.implicit_roles:
            return
        self._roles[name] = Role(name)
        self.collector.add(
            "INFO",
            f"Role '{name}' was referenced before CREATE ROLE and was "
            f"registered implicitly.",
            name,
        )

    def _add_edge(
        self,
        member: str,
        group: str,
        admin: bool = False,
        inherit: Optional[bool] = None,
    ) -> None:
        self._ensure_role(member)
        self._ensure_role(group)
        existing = self._edges.get((member, group))
        if existing is not None:
            admin = admin or existing.admin_option
            if inherit is None:
                inherit = existing.inherit
        self._edges[(member, group)] = MembershipEdge(
            member, group, admin_option=admin, inherit=inherit
        )

    def _apply_create_role(self, cursor: _Cursor) -> None:
        kind = cursor.next().keyword
        name = cursor.name()
        can_login = kind == "USER"
        inherit = True
        members: List[Tuple[str, bool]] = []
        groups: List[str] = []

        cursor.accept("WITH")
        while not cursor.at_end:
            if cursor.accept("LOGIN"):
                can_login = True
            elif cursor.accept("NOLOGIN"):
                can_login = False
            elif cursor.accept("INHERIT"):
                inherit = True
            elif cursor.accept("NOINHERIT"):
                inherit = False
            elif cursor.accept("IN", "ROLE") or cursor.accept("IN", "GROUP"):
                groups.extend(cursor.name_list())
            elif cursor.accept("ROLE") or cursor.accept("USER"):
                members.extend((m, False) for m in cursor.name_list())
            elif cursor.accept("ADMIN"):
                members.extend((m, True) for m in cursor.name_list())
            else:
                # PASSWORD 'x', VALID UNTIL '...', SUPERUSER, CONNECTION LIMIT n
                cursor.next()

        # CREATE ROLE replaces any implicit registration
        self._roles[name] = Role(name, can_login=can_login, inherit=inherit)
        for group in groups:
            self._add_edge(name, group)
        for member, admin in members:
            self._add_edge(member, name, admin)

    def _apply_alter_role(self, cursor: _Cursor) -> None:
        cursor.next()
        name = cursor.name()
        if cursor.check("RENAME"):
            raise _Unsupported("ALTER ROLE ... RENAME")
        if cursor.check("SET") or cursor.check("RESET"):
            return
        self._ensure_role(name)
        role = self._roles.get(name)
        if role is None:
            raise _Unsupported(f"ALTER of unknown role '{name}'")

        can_login, inherit = role.can_login, role.inherit
        cursor.accept("WITH")
        while not cursor.at_end:
            word = cursor.next().keyword
            if word == "LOGIN":
                can_login = True
            elif word == "NOLOGIN":
                can_login = False
            elif word == "INHERIT":
                inherit = True
            elif word == "NOINHERIT":
                inherit = False
        self._roles[name] = Role(name, can_login=can_login, inherit=inherit)

    def _apply_drop_role(self, cursor: _Cursor) -> None:
        cursor.next()
        cursor.accept("IF", "EXISTS")
        for name in cursor.name_list():
            self._roles.pop(name, None)
            self._edges = {
                key: edge
                for key, edge in self._edges.items()
                if name not in key
            }
            self._grants = {
                grant: None
                for grant in self._grants
                if grant.grantee != name
            }

    # === GRANT / REVOKE ===

    def _apply_grant(self, cursor: _Cursor, revoke: bool) -> None:
        option_only = None
        if revoke:
            if cursor.accept("GRANT", "OPTION", "FOR"):
                option_only = "grant"
            elif cursor.accept("ADMIN", "OPTION", "FOR"):
                option_only = "admin"
            elif cursor.accept("INHERIT", "OPTION", "FOR"):
                option_only = "inherit"
            elif cursor.accept("SET", "OPTION", "FOR"):
                option_only = "set"

        target_keyword = "FROM" if revoke else "TO"
        items = self._privilege_items(cursor, target_keyword)

        if cursor.accept("ON"):
            resources = self._target(cursor)
            cursor.expect(target_keyword)
            grantees = self._grantees(cursor)
            if option_only is not None:
                # only the grant option is revoked; the privilege stays
                return
            grants = self._build_grants(items, resources, grantees)
            if revoke:
                self._revoke_grants(grants)
            else:
                for grant in grants:
                    self._ensure_role(grant.grantee)
                    self._grants[grant] = None
            return

        cursor.expect(target_keyword)
        roles = []
        for words, columns in items:
            if len(words) != 1 or columns is not None:
                raise _Unsupported("malformed role list in role GRANT")
            roles.append(words[0].as_name())
        members = self._grantees(cursor)
        admin, inherit = self._membership_options(cursor)

        for role in roles:
            for member in members:
                existing = self._edges.get((member, role))
                if not revoke:
                    self._add_edge(member, role, admin, inherit)
                elif option_only is None:
                    self._edges.pop((member, role), None)
                elif existing is None or option_only == "set":
                    continue
                elif option_only == "admin":
                    self._edges[(member, role)] = MembershipEdge(
                        member, role, inherit=existing.inherit
                    )
                elif option_only == "inherit":
                    self._edges[(member, role)] = MembershipEdge(
                        member, role, existing.admin_option, inherit=False
                    )

    @staticmethod
    def _membership_options(cursor: _Cursor) -> Tuple[bool, Optional[bool]]:
        """Read "WITH ADMIN OPTION" or "WITH {ADMIN|INHERIT|SET} TRUE|FALSE, ..."."""
        admin, inherit = False, None
        if not cursor.accept("WITH"):
            return admin, inherit
        while True:
            option = cursor.next().keyword
            value = cursor.next().keyword
            if option not in {"ADMIN", "INHERIT", "SET"} or value not in {
                "OPTION",
                "TRUE",
                "FALSE",
            }:
                raise _Unsupported(f"membership option {option} {value}")
            if option == "ADMIN":
                admin = value != "FALSE"
            elif option == "INHERIT":
                inherit = value != "FALSE"
            if not cursor.accept(","):
                return admin, inherit

    def _privilege_items(
        self, cursor: _Cursor, target_keyword: str
    ) -> List[Tuple[List[_Word], Optional[List[str]]]]:
        """Read "priv [(col, ...)], ..." up to ON or the TO/FROM keyword."""
        items: List[Tuple[List[_Word], Optional[List[str]]]] = []
        words: List[_Word] = []
        columns: Optional[List[str]] = None
        while not cursor.at_end and not (
            cursor.check("ON") or cursor.check(target_keyword)
        ):
            word = cursor.next()
            if word.text == ",":
                if not words:
                    raise _Unsupported("empty privilege in list")
                items.append((words, columns))
                words, columns = [], None
            elif word.text == "(":
                columns = cursor.name_list()
                cursor.expect(")")
            else:
                words.append(word)
        if not words:
            raise _Unsupported("missing privilege or role list")
        items.append((words, columns))
        return items

    def _target(self, cursor: _Cursor) -> List[ResourceRef]:
        """Read the ON target: SCHEMA s, ... or [TABLE] t, ..."""
        if cursor.check("ALL", "TABLES") or cursor.check("ALL", "SEQUENCES"):
            raise _Unsupported("GRANT ... ON ALL ... IN SCHEMA")
        if cursor.accept("SCHEMA"):
            return [ResourceRef(schema) for schema in cursor.name_list()]
        word = cursor.peek()
        if word is not None and word.keyword in UNSUPPORTED_TARGETS:
            raise _Unsupported(f"privileges ON {word.keyword}")
        cursor.accept("TABLE")
        targets = [self._qualified_table(cursor)]
        while cursor.accept(","):
            targets.append(self._qualified_table(cursor))
        return targets

    def _qualified_table(self, cursor: _Cursor) -> ResourceRef:
        first = cursor.name()
        if cursor.accept("."):
            return ResourceRef(first, cursor.name())
        return ResourceRef(self.default_schema, first)

    def _grantees(self, cursor: _Cursor) -> List[str]:
        grantees = []
        while True:
            cursor.accept("GROUP")
            word = cursor.peek()
            if word is not None and word.keyword == "PUBLIC":
                cursor.next()
                self.collector.add(
                    "INFO",
                    "Privileges granted to PUBLIC are not attributed to any role.",
                )
            else:
                grantees.append(cursor.name())
            if not cursor.accept(","):
                return grantees

    def _build_grants(
        self,
        items: List[Tuple[List[_Word], Optional[List[str]]]],
        resources: List[ResourceRef],
        grantees: List[str],
    ) -> List[Grant]:
        grants: List[Grant] = []
        for words, columns in items:
            privilege = " ".join(word.text.upper() for word in words)
            for resource in resources:
                if columns is not None and resource.kind != ResourceKind.TABLE:
                    raise _Unsupported("column list on a schema privilege")
                targets = (
                    [ResourceRef(resource.schema, resource.object, c) for c in columns]
                    if columns is not None
                    else [resource]
                )
                for target in targets:
                    for name in _expand_privilege(privilege, target.kind):
                        for grantee in grantees:
                            grants.append(Grant(grantee, target, name))
        return grants

    def _revoke_grants(self, revoked: List[Grant]) -> None:
        for grant in revoked:
            self._grants.pop(grant, None)
            if grant.kind != ResourceKind.TABLE:
                continue
            # revoking on a table also revokes that privilege on its columns
            for existing in list(self._grants):
                if (
                    existing.grantee == grant.grantee
                    and existing.privilege == grant.privilege
                    and existing.kind == ResourceKind.COLUMN
                    and existing.resource.schema == grant.resource.schema
                    and existing.resource.object == grant.resource.object
                ):
                    del self._grants[existing]


def _is_role_keyword(word: Optional[_Word]) -> bool:
    return word is not None and word.keyword in ROLE_KEYWORDS


def _expand_privilege(privilege: str, kind: ResourceKind) -> Tuple[str, ...]:
    if privilege in ("ALL", "ALL PRIVILEGES"):
        return ALL_PRIVILEGES[kind]
    if privilege == "TEMP":
        return ("TEMPORARY",)
    return (privilege,)


def _statement_text(words: List[_Word]) -> str:
    parts = []
    for word in words:
        if word.kind == _QUOTED:
            parts.append(f'"{word.text}"')
        elif word.kind == _STRING:
            parts.append("'...'")
        else:
            parts.append(word.text)
    return " ".join(parts)
