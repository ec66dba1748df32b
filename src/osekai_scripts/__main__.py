from osekai_scripts.main import run

run()
