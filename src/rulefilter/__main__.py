from rulefilter.cli import run

run()
