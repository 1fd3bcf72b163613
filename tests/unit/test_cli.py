"""End-to-end tests for the ``rulefilter`` command."""

import json

import pytest

from rulefilter.cli import build_parser, main

BOX = " (box-validated on [-4, 4])"

CORPUS = """\
rewrite(x - x, 0)
rewrite(y, x)
rewrite(x * 2, x * 3)
rewrite((x * 2) / 2, x)
rewrite((x * c0) / c0, x, c0 != 0)
"""


@pytest.fixture
def run(tmp_path, capsys):
    """Run the CLI with the bounded oracle and logs under tmp_path."""

    def invoke(*argv):
        code = main(["--oracle", "bounded", "--log-dir", str(tmp_path / "logs"), *argv])
        out, err = capsys.readouterr()
        return code, out, err

    return invoke


class TestCli:
    def test_usage_without_arguments(self, capsys):
        assert main([]) == 0
        assert capsys.readouterr().out.startswith("usage: rulefilter")

    def test_text_report(self, run, rule_file):
        code, out, _ = run(str(rule_file(CORPUS)))
        assert code == 0
        lines = out.splitlines()
        assert len(lines) == 10
        assert all(line.startswith("Re-synthesizing predicate for ") for line in lines[:5])
        assert set(lines[5:]) == {
            "Simplifiable LHS: (x - x) -> 0",
            "Implicit rule: rewrite(y, x)",
            "False predicate: rewrite((x * 2), (x * 3))",
            "Too specific: rewrite(((x * 2) / 2), x) vs rewrite(((x * c0) / c0), x, (c0 != 0))",
            "Good rule: rewrite(((x * c0) / c0), x, (c0 != 0))" + BOX,
        }

    def test_json_report(self, run, rule_file):
        code, out, _ = run("--json", str(rule_file(CORPUS)))
        assert code == 0
        data = json.loads(out)
        assert len(data["rules"]) == 5
        assert data["summary"] == {
            "false_predicate": 1,
            "implicit_rule": 1,
            "simplifiable_lhs": 1,
            "too_specific": 1,
            "good_rule": 1,
        }
        assert data["validated_on"] == "[-4, 4]"

    def test_accepted_out(self, run, rule_file, tmp_path):
        accepted = tmp_path / "accepted.txt"
        code, _, _ = run("--accepted-out", str(accepted), str(rule_file(CORPUS)))
        assert code == 0
        assert accepted.read_text() == "rewrite(((x * c0) / c0), x, (c0 != 0))\n"
        # the accepted rules survive a second pass unchanged
        code, out, _ = run(str(accepted))
        assert code == 0
        assert out.splitlines()[-1] == "Good rule: rewrite(((x * c0) / c0), x, (c0 != 0))" + BOX

    def test_bounded_oracle_warns(self, run, rule_file):
        code, out, err = run(str(rule_file("rewrite(min(x, 100), x)\n")))
        assert code == 0
        assert out.splitlines()[-1] == "Good rule: rewrite(min(x, 100), x, true)" + BOX
        assert "not proven over all integers" in err

    def test_log_file_is_written(self, run, rule_file, tmp_path):
        run("--log-level", "debug", str(rule_file("rewrite(x + y, x)\n")))
        assert (tmp_path / "logs" / "rulefilter.log").exists()

    def test_parse_error(self, run, rule_file):
        code, out, err = run(str(rule_file("rewrite(x +, x)\n")))
        assert code == 1
        assert out == ""
        assert "rules.txt" in err

    def test_non_rewrite_term(self, run, rule_file):
        code, out, err = run(str(rule_file("rewrite(x, x)\nx + 1\n")))
        assert code == 1
        assert out == ""
        assert "not a rewrite rule" in err

    def test_missing_file(self, run, tmp_path):
        code, out, err = run(str(tmp_path / "missing.txt"))
        assert code == 2
        assert out == ""
        assert "Cannot read" in err

    def test_config_file(self, run, rule_file, tmp_path):
        config = tmp_path / "cfg.json"
        config.write_text(json.dumps({"synthesis": {"max_iterations": 1}}))
        code, out, _ = run("--config", str(config), str(rule_file("rewrite(x + y, x)\n")))
        assert code == 0
        assert out.splitlines()[-1] == "False predicate: rewrite((x + y), x)"

    def test_flags_override_config(self, run, rule_file, tmp_path):
        config = tmp_path / "cfg.json"
        config.write_text(json.dumps({"synthesis": {"max_iterations": 1}}))
        code, out, _ = run(
            "--config", str(config), "--max-iterations", "4", str(rule_file("rewrite(x + y, x)\n"))
        )
        assert code == 0
        assert out.splitlines()[-1] == "Good rule: rewrite((x + y), x, (y == 0))" + BOX

    @pytest.mark.parametrize(
        "content",
        ["{not json", json.dumps({"oracle_backend": "cvc5"}), json.dumps({"synthesis": {"bogus": 1}})],
    )
    def test_bad_config(self, run, rule_file, tmp_path, content):
        config = tmp_path / "cfg.json"
        config.write_text(content)
        code, out, err = run("--config", str(config), str(rule_file("rewrite(x, x)\n")))
        assert code == 2
        assert out == ""
        assert "Invalid configuration" in err

    def test_parser_rejects_unknown_backend(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--oracle", "cvc5", "rules.txt"])


@pytest.mark.z3
def test_z3_backend(rule_file, tmp_path, capsys):
    pytest.importorskip("z3")
    path = rule_file("rewrite(x - x, 0)\nrewrite(x + y, x)\n")
    assert main(["--oracle", "z3", "--log-dir", str(tmp_path / "logs"), str(path)]) == 0
    out = capsys.readouterr().out.splitlines()
    assert "Simplifiable LHS: (x - x) -> 0" in out
    assert "Good rule: rewrite((x + y), x, (y == 0))" in out
