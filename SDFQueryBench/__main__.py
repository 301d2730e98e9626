from SDFQueryBench.cli import main

main()
