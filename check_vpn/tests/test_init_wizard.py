import pytest
from dotenv import dotenv_values

from check_vpn.config import Settings
from check_vpn.errors import ServerError
from check_vpn.providers import Identity, Provider
from check_vpn.init_wizard import PLACEHOLDER_ISP, detect_isp, is_interactive, run_init


class CannedProvider(Provider):
    url = "stub://canned"

    def __init__(self, result):
        super().__init__()
        self._result = result

    @property
    def name(self):
        return "canned"

    def query(self):
        if isinstance(self._result, Exception):
            raise self._result
        return Identity(self._result)


def scripted(answers):
    """Return an input() replacement that replays `answers` in order"""
    answers = iter(answers)
    return lambda _prompt: next(answers)


# ===========================
# TEST GROUP: ISP Detection
# ===========================
def test_detect_isp_uses_chain():
    assert detect_isp([CannedProvider("Example Mobile")]) == "Example Mobile"

def test_detect_isp_falls_back_to_placeholder():
    assert detect_isp([CannedProvider(ServerError(502))]) == PLACEHOLDER_ISP


# =================================
# TEST GROUP: Non-interactive Init
# =================================
def test_non_interactive_writes_defaults(tmp_path):
    output = tmp_path / "conf" / ".env"

    path = run_init(
        output=str(output),
        interactive=False,
        providers=[CannedProvider("Example Mobile")],
    )

    values = dotenv_values(path)
    assert path == output
    assert values["ISP_TO_CHECK"] == "Example Mobile"
    assert values["CYCLE_INTERVAL"] == "60"
    assert values["VPN_LOST_ACTION_TYPE"] == "restart-unit"
    assert values["VPN_LOST_ACTION_ARG"] == "openvpn-client@myvpn.service"
    assert values["CONNECTIVITY_PORTS"] == "443,53"
    assert values["ENABLE_IP_API"] == "true"

def test_no_fetch_uses_placeholder(tmp_path):
    path = run_init(output=str(tmp_path / ".env"), no_fetch=True, interactive=False)

    assert dotenv_values(path)["ISP_TO_CHECK"] == PLACEHOLDER_ISP

def test_generated_file_is_loadable_and_valid(tmp_path):
    path = run_init(output=str(tmp_path / ".env"), no_fetch=True, interactive=False)

    settings = Settings.from_env(dotenv_values(path))

    settings.validate()
    assert settings.connectivity_ports == (443, 53)
    assert settings.dry_run is False


# =============================
# TEST GROUP: Interactive Init
# =============================
def test_interactive_answers_are_written(tmp_path):
    ask = scripted(["Typed ISP", "120", "command", "/usr/local/bin/fix_vpn.sh"])

    path = run_init(output=str(tmp_path / ".env"), no_fetch=True, interactive=True, ask=ask)

    values = dotenv_values(path)
    assert values["ISP_TO_CHECK"] == "Typed ISP"
    assert values["CYCLE_INTERVAL"] == "120"
    assert values["VPN_LOST_ACTION_TYPE"] == "command"
    assert values["VPN_LOST_ACTION_ARG"] == "/usr/local/bin/fix_vpn.sh"

def test_blank_answers_keep_defaults(tmp_path):
    ask = scripted(["", "", "", ""])

    path = run_init(
        output=str(tmp_path / ".env"),
        interactive=True,
        providers=[CannedProvider("Detected ISP")],
        ask=ask,
    )

    values = dotenv_values(path)
    assert values["ISP_TO_CHECK"] == "Detected ISP"
    assert values["VPN_LOST_ACTION_TYPE"] == "restart-unit"

def test_reboot_skips_argument_prompt(tmp_path):
    ask = scripted(["ISP", "abc", "reboot"])

    path = run_init(output=str(tmp_path / ".env"), no_fetch=True, interactive=True, ask=ask)

    values = dotenv_values(path)
    assert values["VPN_LOST_ACTION_ARG"] == ""
    # Non-numeric interval → default
    assert values["CYCLE_INTERVAL"] == "60"

def test_existing_keys_updated_in_place(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("ISP_TO_CHECK=Old ISP\nUNRELATED=keep\n")

    run_init(output=str(env_file), no_fetch=True, interactive=False)

    values = dotenv_values(env_file)
    assert values["ISP_TO_CHECK"] == PLACEHOLDER_ISP
    assert values["UNRELATED"] == "keep"


# =============================
# TEST GROUP: Prompt Detection
# =============================
@pytest.mark.parametrize("var", ["CI", "CHECK_VPN_INIT_NO_PROMPT"])
def test_prompting_disabled_by_env(monkeypatch, var):
    monkeypatch.setenv(var, "1")

    assert is_interactive() is False
