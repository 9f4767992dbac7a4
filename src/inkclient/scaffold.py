"""
Scenario test scaffolding.

Renders a pytest module that deploys a contract on a live node and exercises
it through the dual-mode call interface. Contract names are sanitized before
they are used in generated code: "uniswap-core" becomes the identifier
"uniswap_core" and the class name "UniswapCore", never a hyphenated name.

Functions:
- render_scenario_test(metadata, metadata_path) -> str
- write_scenario_test(metadata_path, output_dir, overwrite=False) -> Path
"""

import logging
from pathlib import Path
from string import Template
from typing import List, Union

from .metadata import ContractMetadata, ConstructorSpec, to_class_name, to_identifier

logger = logging.getLogger(__name__)


MODULE_TEMPLATE = Template('''"""
Scenario tests for the $name contract.

Generated by inkclient.scaffold from $metadata_file.
Runs against a live node: INK_TEST_MODE=live pytest -m live
"""

import pytest

from inkclient import ClientConfig, ContractMetadata, open_scenario

METADATA_PATH = $metadata_path

# $constructor_signature
CONSTRUCTOR_ARGS = $constructor_args

pytestmark = pytest.mark.live


@pytest.fixture(scope="module")
def ${ident}_context():
    config = ClientConfig.from_env()
    if not config.is_live_mode():
        pytest.skip("Set INK_TEST_MODE=live to run against a node")
    with open_scenario(config) as ctx:
        yield ctx


@pytest.fixture(scope="module")
def ${ident}_contract(${ident}_context):
    if CONSTRUCTOR_ARGS is None:
        pytest.skip("Fill in CONSTRUCTOR_ARGS for $constructor_signature")
    metadata = ContractMetadata.from_file(METADATA_PATH)
    return ${ident}_context.deploy(metadata, *CONSTRUCTOR_ARGS, constructor="$constructor")


class Test${class_name}:
    """Scenario checks for $name."""

    def test_deploys(self, ${ident}_contract):
        assert ${ident}_contract.address
$message_tests''')


FLIP_TESTS = Template('''
    def test_sets_initial_state(self, ${ident}_contract):
        assert ${ident}_contract.query.get().value.ok == CONSTRUCTOR_ARGS[0]

    def test_can_flip_state(self, ${ident}_context, ${ident}_contract):
        signed = ${ident}_contract.with_signer(${ident}_context.deployer)
        outcome = signed.query.flip()

        signed.tx.flip(gas_limit=outcome.gas_required)

        assert ${ident}_contract.query.get().value.ok == (not CONSTRUCTOR_ARGS[0])
''')


QUERY_TEST = Template('''
    def test_${message_ident}_is_queryable(self, ${ident}_contract):
        outcome = ${ident}_contract.query.${message_ident}()
        assert outcome.succeeded
''')


def render_scenario_test(metadata: ContractMetadata, metadata_path: Union[str, Path]) -> str:
    """
    Render the scenario test module for a contract.

    Contracts with ``get``/``flip`` messages and a single-argument default
    constructor get the flip scenario; every other argument-less read-only
    message gets a query smoke test.
    """
    ident = to_identifier(metadata.name)
    constructor = metadata.constructor()

    if _is_flipper(metadata, constructor):
        constructor_args = "(True,)"
        message_tests = FLIP_TESTS.substitute(ident=ident)
        skipped = {"get", "flip"}
    else:
        constructor_args = "()" if constructor.arity == 0 else "None"
        message_tests = ""
        skipped = set()

    for spec in metadata.messages:
        if spec.mutates or spec.arity or spec.label in skipped:
            continue
        message_tests += QUERY_TEST.substitute(ident=ident, message_ident=spec.identifier)

    return MODULE_TEMPLATE.substitute(
        name=metadata.name,
        metadata_file=Path(metadata_path).name,
        metadata_path=repr(str(metadata_path)),
        constructor=constructor.label,
        constructor_signature=_signature(constructor),
        constructor_args=constructor_args,
        ident=ident,
        class_name=to_class_name(metadata.name),
        message_tests=message_tests,
    )


def write_scenario_test(
    metadata_path: Union[str, Path],
    output_dir: Union[str, Path],
    overwrite: bool = False,
) -> Path:
    """
    Render and write ``test_<identifier>.py`` for the contract artifact.

    Raises:
        MetadataError: Artifact unreadable or malformed
        FileExistsError: Target exists and overwrite is False
    """
    metadata = ContractMetadata.from_file(metadata_path)
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    target = output_dir / f"test_{to_identifier(metadata.name)}.py"
    if target.exists() and not overwrite:
        raise FileExistsError(f"{target} already exists (use overwrite=True)")

    target.write_text(render_scenario_test(metadata, metadata_path), encoding="utf-8")
    logger.info(f"Wrote scenario test for {metadata.name}: {target}")
    return target


def _is_flipper(metadata: ContractMetadata, constructor: ConstructorSpec) -> bool:
    if not (metadata.has_message("get") and metadata.has_message("flip")):
        return False
    return constructor.arity == 1 and metadata.message("flip").mutates


def _signature(constructor: ConstructorSpec) -> str:
    args: List[str] = [
        f"{arg.label}: {arg.type_name}" if arg.type_name else arg.label
        for arg in constructor.args
    ]
    return f"{constructor.label}({', '.join(args)})"
