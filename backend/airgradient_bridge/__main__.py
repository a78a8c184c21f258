from airgradient_bridge.main import run

run()
