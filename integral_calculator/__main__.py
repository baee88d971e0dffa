from integral_calculator.cli import main

raise SystemExit(main())
