from svsweep.cli import svsweep_app

svsweep_app()
