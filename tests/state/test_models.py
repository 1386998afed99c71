"""Tests for upgrade state data models and their JSON layout."""

from datetime import datetime, timezone

import pytest

from devnet_upgrade.state.models import (
    CURRENT_SCHEMA_VERSION,
    MODE_DOCKER,
    MODE_LOCAL,
    TERMINAL_STAGES,
    NodeSwitch,
    StageTransition,
    UpgradeStage,
    UpgradeState,
    ValidatorVote,
)


class TestUpgradeStage:
    """Test the stage enumeration."""

    def test_stage_values_are_names(self):
        """JSON values match the stage names."""
        assert UpgradeStage.INITIALIZED.value == "Initialized"
        assert UpgradeStage.WAITING_FOR_HEIGHT.value == "WaitingForHeight"
        assert UpgradeStage.PROPOSAL_REJECTED.value == "ProposalRejected"
        assert str(UpgradeStage.CHAIN_HALTED) == "ChainHalted"
        assert len(UpgradeStage) == 10

    def test_terminal_stages(self):
        assert TERMINAL_STAGES == {
            UpgradeStage.COMPLETED,
            UpgradeStage.FAILED,
            UpgradeStage.PROPOSAL_REJECTED,
        }
        for stage in UpgradeStage:
            assert stage.is_terminal == (stage in TERMINAL_STAGES)

    def test_unknown_stage_rejected(self):
        with pytest.raises(ValueError):
            UpgradeStage("Paused")


class TestUpgradeStateCreate:
    """Test creation of a new upgrade state."""

    def test_create_seeds_history(self):
        """A new state starts at Initialized with one seed entry."""
        state = UpgradeState.create("v2-upgrade", MODE_DOCKER)

        assert state.upgrade_name == "v2-upgrade"
        assert state.mode == MODE_DOCKER
        assert state.skip_governance is False
        assert state.stage == UpgradeStage.INITIALIZED
        assert state.schema_version == CURRENT_SCHEMA_VERSION
        assert state.checksum == ""
        assert state.proposal_id == 0
        assert state.created_at == state.updated_at
        assert state.created_at.tzinfo is not None

        assert len(state.stage_history) == 1
        seed = state.stage_history[0]
        assert seed.from_stage is None
        assert seed.to_stage == UpgradeStage.INITIALIZED
        assert seed.reason == "upgrade initiated"
        assert seed.timestamp == state.created_at

    def test_create_skip_governance(self):
        state = UpgradeState.create("hotfix", MODE_LOCAL, skip_governance=True)
        assert state.skip_governance is True
        assert state.mode == MODE_LOCAL


class TestNodeSwitchHelpers:
    """Test node switch progress helpers."""

    def test_no_switches(self, fresh_state):
        assert fresh_state.any_node_switched() is False
        assert fresh_state.all_nodes_switched() is False

    def test_partial_switches(self, fresh_state):
        fresh_state.node_switches = [
            NodeSwitch("node0", switched=True, stopped=True, started=True, new_binary="/bin/v2"),
            NodeSwitch("node1", stopped=True),
        ]
        assert fresh_state.any_node_switched() is True
        assert fresh_state.all_nodes_switched() is False

    def test_all_switched(self, fresh_state):
        fresh_state.node_switches = [
            NodeSwitch("node0", switched=True, stopped=True, started=True, new_binary="/bin/v2"),
            NodeSwitch("node1", switched=True, stopped=True, started=True, new_binary="/bin/v2"),
        ]
        assert fresh_state.all_nodes_switched() is True


class TestSerialization:
    """Test the camelCase state file layout."""

    def test_to_dict_keys(self, fresh_state):
        data = fresh_state.to_dict()

        assert data["version"] == 1
        assert data["upgradeName"] == "v2-upgrade"
        assert data["stage"] == "Initialized"
        assert data["skipGovernance"] is False
        assert data["proposalID"] == 0
        assert data["validatorVotes"] == []
        assert data["nodeSwitches"] == []
        assert data["stageHistory"][0]["from"] == ""
        assert data["stageHistory"][0]["to"] == "Initialized"
        assert isinstance(data["createdAt"], str)

    def test_round_trip_preserves_all_fields(self, fresh_state):
        ts = datetime(2024, 5, 1, 12, 30, 15, 123456, tzinfo=timezone.utc)
        fresh_state.proposal_id = 7
        fresh_state.upgrade_height = 1500
        fresh_state.target_binary = "/usr/local/bin/stabled-v2"
        fresh_state.target_version = "v2.0.0"
        fresh_state.validator_votes = [
            ValidatorVote("stablevaloper1abc", "validator-0", True, "ABCDEF", ts),
            ValidatorVote("stablevaloper1def", "validator-1"),
        ]
        fresh_state.node_switches = [
            NodeSwitch("node0", True, True, True, "/bin/v1", "/bin/v2", ts),
        ]

        restored = UpgradeState.from_dict(fresh_state.to_dict())

        assert restored == fresh_state
        assert restored.validator_votes[0].timestamp == ts
        assert restored.validator_votes[1].timestamp is None

    def test_zulu_timestamps_accepted(self, fresh_state):
        data = fresh_state.to_dict()
        data["createdAt"] = "2024-05-01T12:00:00Z"
        data["updatedAt"] = "2024-05-01T12:00:01Z"

        restored = UpgradeState.from_dict(data)

        assert restored.created_at == datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    def test_missing_optional_fields_default(self, fresh_state):
        data = fresh_state.to_dict()
        for key in ("targetImage", "validatorVotes", "nodeSwitches", "error"):
            del data[key]

        restored = UpgradeState.from_dict(data)

        assert restored.target_image == ""
        assert restored.validator_votes == []
        assert restored.error == ""

    @pytest.mark.parametrize("key,value", [
        ("stage", "Paused"),
        ("skipGovernance", "yes"),
        ("proposalID", -1),
        ("proposalID", "7"),
        ("createdAt", "not-a-time"),
        ("stageHistory", {"from": ""}),
    ])
    def test_malformed_fields_raise(self, fresh_state, key, value):
        data = fresh_state.to_dict()
        data[key] = value

        with pytest.raises((ValueError, TypeError)):
            UpgradeState.from_dict(data)

    def test_history_entry_requires_target(self):
        with pytest.raises(ValueError):
            StageTransition.from_dict({"from": "", "to": "", "timestamp": "2024-01-01T00:00:00+00:00"})

    def test_non_object_document_rejected(self):
        with pytest.raises(TypeError):
            UpgradeState.from_dict(["not", "an", "object"])
