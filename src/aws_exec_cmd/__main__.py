from aws_exec_cmd.cli import main

raise SystemExit(main())
